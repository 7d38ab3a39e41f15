"""SQLAlchemy Models for the accreditation service"""

from .base import Base
from .user import User
from .audit_log import AuditLog
from .verification import (
    VerificationRequest,
    VerificationStatus,
    VerificationType,
    OPEN_STATUSES,
)
from .document import VerificationDocument, DocumentType, ScanStatus

__all__ = [
    "Base",
    "User",
    "AuditLog",
    "VerificationRequest",
    "VerificationStatus",
    "VerificationType",
    "OPEN_STATUSES",
    "VerificationDocument",
    "DocumentType",
    "ScanStatus",
]
