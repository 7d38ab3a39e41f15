"""Service construction.

Builds the database handle and the services on top of it in one place, for
the FastAPI lifespan, the Celery worker and the tests.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import Settings
from .database import Database
from .documents.encryption import DocumentCipher
from .documents.ports import ScannerPort
from .documents.scanner import SimulatedScanner
from .documents.vault import DocumentVault, ScanDispatcher
from .models.base import utcnow
from .notifications.email import build_notifier
from .notifications.ports import NotificationPort
from .users.service import IdentityDirectory
from .verifications.service import VerificationLifecycleManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    database: Database
    directory: IdentityDirectory
    vault: DocumentVault
    manager: VerificationLifecycleManager
    notifier: NotificationPort

    def close(self) -> None:
        self.database.dispose()


def build_services(
    settings: Settings,
    database: Optional[Database] = None,
    notifier: Optional[NotificationPort] = None,
    scanner: Optional[ScannerPort] = None,
    scan_dispatcher: Optional[ScanDispatcher] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    """Wire up all services from settings.

    The cipher is built first so a missing or malformed encryption key stops
    startup before any connection is opened.

    Raises:
        EncryptionKeyError: If DOCUMENT_ENCRYPTION_KEY is missing or invalid
    """
    cipher = DocumentCipher.from_settings(settings)

    if database is None:
        database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    if notifier is None:
        notifier = build_notifier(settings)

    vault = DocumentVault(
        database=database,
        cipher=cipher,
        scanner=scanner or SimulatedScanner(),
        scan_dispatcher=scan_dispatcher,
        clock=clock,
        retention_days=settings.DOCUMENT_RETENTION_DAYS,
        max_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES,
        max_files=settings.MAX_UPLOAD_FILES,
    )
    manager = VerificationLifecycleManager(
        database=database,
        vault=vault,
        notifier=notifier,
        clock=clock,
        validity_days=settings.VERIFICATION_VALIDITY_DAYS,
    )

    logger.info(f"Services initialized (environment={settings.ENVIRONMENT})")
    return Services(
        settings=settings,
        database=database,
        directory=IdentityDirectory(database),
        vault=vault,
        manager=manager,
        notifier=notifier,
    )
