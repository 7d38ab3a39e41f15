"""Celery application for background jobs.

Run a worker and the beat scheduler with:
    celery -A accreditation.worker worker --loglevel=info
    celery -A accreditation.worker beat --loglevel=info

Each worker process builds its own Services container on start and disposes
it on shutdown; tasks reach it through get_worker_services().
"""

import logging
from typing import Optional

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init, worker_process_shutdown

from .bootstrap import Services, build_services
from .config import get_settings
from .observability.logging_config import configure_logging

logger = logging.getLogger(__name__)

settings = get_settings()

celery_app = Celery(
    "accreditation",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["accreditation.documents.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        'documents-purge-expired-daily': {
            'task': 'documents.purge_expired',
            'schedule': crontab(hour=2, minute=0),  # 02:00 UTC
            'options': {
                'expires': 3600,  # Task expires after 1 hour if not picked up
            },
        },
    },
)

_services: Optional[Services] = None


def get_worker_services() -> Services:
    """Services for the current worker process, built on first use."""
    global _services
    if _services is None:
        # Scans run inline here; re-enqueueing from the worker would loop
        _services = build_services(settings)
    return _services


@worker_process_init.connect
def init_worker_process(**kwargs) -> None:
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    get_worker_services()
    logger.info("Worker process initialized")


@worker_process_shutdown.connect
def shutdown_worker_process(**kwargs) -> None:
    global _services
    if _services is not None:
        _services.close()
        _services = None
