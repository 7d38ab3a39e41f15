"""VerificationDocument SQLAlchemy model

Supporting document attached to a verification request. The payload is
stored encrypted in the row itself; only metadata survives the retention
window.
"""

import enum
import uuid

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    LargeBinary,
    Text,
    Uuid,
)
from sqlalchemy.orm import deferred, relationship

from .base import Base, UTCDateTime, utcnow


class DocumentType(str, enum.Enum):
    BANK_STATEMENT = "BANK_STATEMENT"
    TAX_RETURN = "TAX_RETURN"
    PAY_STUB = "PAY_STUB"
    EMPLOYMENT_LETTER = "EMPLOYMENT_LETTER"
    CPA_LETTER = "CPA_LETTER"
    INVESTMENT_STATEMENT = "INVESTMENT_STATEMENT"
    OTHER = "OTHER"


class ScanStatus(str, enum.Enum):
    """Malware scan status

    PENDING → CLEAN | INFECTED | ERROR
    """
    PENDING = "PENDING"
    CLEAN = "CLEAN"
    INFECTED = "INFECTED"
    ERROR = "ERROR"


class VerificationDocument(Base):
    """Encrypted supporting document.

    ciphertext is present exactly while deleted_at is unset. Purging
    discards the payload but keeps the row for audit.
    """
    __tablename__ = "verification_document"
    __table_args__ = (
        Index("ix_verification_document_verification_id", "verification_id"),
        Index("ix_verification_document_scheduled_deletion", "scheduled_deletion", "deleted_at"),
        CheckConstraint(
            "(ciphertext IS NOT NULL AND deleted_at IS NULL) OR "
            "(ciphertext IS NULL AND deleted_at IS NOT NULL)",
            name="ck_verification_document_payload",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    verification_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("verification_request.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type = Column(
        SQLEnum(DocumentType, name="documenttype", native_enum=False, length=32),
        nullable=False,
    )
    file_name = Column(Text, nullable=False)
    mime_type = Column(Text, nullable=False)
    size_bytes = Column(BigInteger, nullable=False)

    # Encrypted payload. Deferred so listing documents never pulls blobs.
    ciphertext = deferred(Column(LargeBinary, nullable=True))
    encryption_iv = Column(Text, nullable=False)  # hex string
    checksum = Column(Text, nullable=False)  # SHA-256 of plaintext, hex string

    scan_status = Column(
        SQLEnum(ScanStatus, name="scanstatus", native_enum=False, length=20),
        nullable=False,
        default=ScanStatus.PENDING,
    )
    scan_date = Column(UTCDateTime, nullable=True)
    scan_result = Column(Text, nullable=True)

    uploaded_at = Column(UTCDateTime, nullable=False, default=utcnow)
    scheduled_deletion = Column(UTCDateTime, nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)

    # Relationships
    verification = relationship("VerificationRequest", back_populates="documents")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self):
        """Convert document metadata to dictionary (never includes the payload)"""
        return {
            "id": str(self.id),
            "verification_id": str(self.verification_id),
            "document_type": self.document_type.value,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "checksum": self.checksum,
            "scan_status": self.scan_status.value,
            "scan_date": self.scan_date.isoformat() if self.scan_date else None,
            "scan_result": self.scan_result,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "scheduled_deletion": self.scheduled_deletion.isoformat() if self.scheduled_deletion else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }
