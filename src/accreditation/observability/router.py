"""Observability API endpoints.

Provides Prometheus metrics and a health check for monitoring.
"""

import logging
import time

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..bootstrap import Services
from ..dependencies import get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    include_in_schema=False,
)
def metrics():
    """Expose Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns 200 when the database answers, 503 otherwise",
)
def health_check(services: Services = Depends(get_services)):
    start = time.time()
    try:
        with services.database.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        database = {"status": "healthy", "latency_ms": round((time.time() - start) * 1000, 2)}
    except SQLAlchemyError as e:
        logger.error("Database health check failed", exc_info=True)
        database = {"status": "unhealthy", "error": type(e).__name__}

    healthy = database["status"] == "healthy"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "components": {"database": database},
        },
    )
