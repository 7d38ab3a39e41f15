"""Celery tasks for the Document Vault.

Tasks:
- purge_expired_documents_task: Daily job running at 02:00 UTC
- scan_document_task: Asynchronous malware scan (SCAN_ASYNC=true)

Both tasks are idempotent: a purge run finds nothing already purged, and a
redelivered scan records the same verdict without changing state.
"""

import logging
import time
from typing import Any, Dict
from uuid import UUID

from celery import shared_task

from ..errors import IntegrityError, NotFoundError, StorageError

logger = logging.getLogger(__name__)


def _vault():
    from ..worker import get_worker_services
    return get_worker_services().vault


@shared_task(name="documents.purge_expired", bind=True)
def purge_expired_documents_task(self) -> Dict[str, Any]:
    """Discard document payloads whose retention window has passed.

    Scheduled daily at 02:00 UTC via Celery Beat (see worker.py).

    Returns:
        Dict with run statistics:
        - status: completed | failed
        - documents_purged: Number of payloads discarded in this run
        - duration_seconds: Total execution time
    """
    logger.info("Document retention sweep started")
    start = time.time()

    try:
        purged = _vault().purge_expired()
    except StorageError as e:
        logger.error(
            "Document retention sweep failed",
            exc_info=True,
            extra={"error": str(e)}
        )
        # Next scheduled run picks up the same rows
        return {
            'status': 'failed',
            'error': str(e),
            'documents_purged': 0,
        }

    result = {
        'status': 'completed',
        'documents_purged': purged,
        'duration_seconds': round(time.time() - start, 3),
    }
    logger.info("Document retention sweep completed", extra=result)
    return result


@shared_task(
    name="documents.scan",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def scan_document_task(self, document_id: str) -> Dict[str, Any]:
    """Scan one stored document and record the verdict.

    Args:
        document_id: Document UUID as string

    Raises:
        ValueError: If document_id is not a valid UUID
    """
    try:
        doc_uuid = UUID(document_id)
    except (ValueError, AttributeError, TypeError) as e:
        raise ValueError(f"Invalid document_id format '{document_id}': {e}")

    try:
        scan_status = _vault().scan(doc_uuid)
    except StorageError as e:
        logger.warning(
            f"Scan of {document_id} hit a storage error, retrying",
            extra={"document_id": document_id},
        )
        raise self.retry(exc=e)
    except NotFoundError:
        # Purged or deleted before the worker got to it
        logger.warning(f"Document {document_id} no longer exists, scan skipped")
        return {'status': 'skipped', 'document_id': document_id}
    except IntegrityError as e:
        return {'status': 'failed', 'document_id': document_id, 'error': e.message}

    return {
        'status': 'completed',
        'document_id': document_id,
        'scan_status': scan_status.value,
    }


def enqueue_scan(document_id: UUID) -> None:
    """Scan dispatcher for DocumentVault when SCAN_ASYNC is enabled."""
    # Binds the task to the configured broker
    from ..worker import celery_app  # noqa: F401

    scan_document_task.delay(str(document_id))
