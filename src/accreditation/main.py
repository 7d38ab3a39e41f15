"""Accreditation Service - Main FastAPI Application

This module creates and configures the FastAPI application, including:
- Service construction in the lifespan (database, vault, lifecycle manager)
- Request ID middleware
- Exception handlers translating domain errors to HTTP responses
- Health and metrics endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .audit.router import router as audit_router
from .bootstrap import Services, build_services
from .config import Settings, get_settings
from .errors import AccreditationError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .users.router import router as users_router
from .users.webhook import router as identity_webhook_router
from .verifications.router import admin_router as verification_admin_router
from .verifications.router import router as verifications_router

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "eligibility": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "conflict": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "integrity": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "storage": status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Kinds whose message is replaced before it reaches the client
GENERIC_MESSAGES = {
    "integrity": "The document could not be verified. The incident has been logged.",
    "storage": "The service is temporarily unavailable. Please try again later.",
}


def _scan_dispatcher(settings: Settings):
    if not settings.SCAN_ASYNC:
        return None
    from .documents.tasks import enqueue_scan
    return enqueue_scan


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Application factory.

    Args:
        settings: Settings to use (defaults to get_settings())
        services: Prebuilt service container. When given, the lifespan neither
            builds nor disposes it (tests own its lifecycle).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
        logger.info("Accreditation API starting up...")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

        owned = services is None
        app.state.services = services or build_services(
            settings,
            scan_dispatcher=_scan_dispatcher(settings),
        )

        yield

        logger.info("Accreditation API shutting down...")
        if owned:
            app.state.services.close()

    production = settings.ENVIRONMENT == "production"
    app = FastAPI(
        title="Accreditation API",
        description="Accredited investor verification",
        version="0.1.0",
        docs_url=None if production else "/docs",
        redoc_url=None if production else "/redoc",
        openapi_url=None if production else "/openapi.json",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(RequestIDMiddleware)

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    @app.exception_handler(AccreditationError)
    async def domain_exception_handler(request: Request, exc: AccreditationError) -> JSONResponse:
        status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logger.error(
                f"{exc.kind} error on {request.method} {request.url.path}: {exc.message}",
                extra={"method": request.method, "path": request.url.path},
            )
        else:
            logger.info(f"{exc.kind} error on {request.method} {request.url.path}: {exc.message}")

        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.kind,
                "message": GENERIC_MESSAGES.get(exc.kind, exc.message),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle Pydantic validation errors with field-level details."""
        logger.warning(f"Validation error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": exc.errors(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Full details are logged but not exposed to the client."""
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}",
            exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred. Please try again later.",
            },
        )

    # =========================================================================
    # ROUTER REGISTRATION
    # =========================================================================

    app.include_router(observability_router)
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(identity_webhook_router, prefix="/api/v1")
    app.include_router(verifications_router, prefix="/api/v1")
    app.include_router(verification_admin_router, prefix="/api/v1")
    app.include_router(audit_router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {
            "name": "Accreditation API",
            "version": "0.1.0",
            "status": "running",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "accreditation.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
