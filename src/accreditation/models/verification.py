"""VerificationRequest SQLAlchemy model

A user's claim to qualify as an accredited investor, with the financial
attestation, the review trail, and the supporting documents.
"""

import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text

from .base import Base, UTCDateTime, utcnow


class VerificationType(str, enum.Enum):
    """Basis of the accreditation claim. Immutable after creation."""
    INCOME = "INCOME"
    NET_WORTH = "NET_WORTH"
    PROFESSIONAL = "PROFESSIONAL"


class VerificationStatus(str, enum.Enum):
    """Status values for a verification request

    State flow: PENDING → IN_REVIEW → APPROVED or REJECTED
    APPROVED becomes EXPIRED once expires_at passes.
    """
    PENDING = "PENDING"        # Submitted, documents may still be attached
    IN_REVIEW = "IN_REVIEW"    # Picked up by a reviewer
    APPROVED = "APPROVED"      # Accredited until expires_at
    REJECTED = "REJECTED"      # Terminal
    EXPIRED = "EXPIRED"        # Terminal


OPEN_STATUSES = (VerificationStatus.PENDING, VerificationStatus.IN_REVIEW)


class VerificationRequest(Base):
    """Accreditation verification request.

    At most one request per user may be open (PENDING or IN_REVIEW). The
    partial unique index enforces this in the database so concurrent
    submissions cannot both succeed.
    """
    __tablename__ = "verification_request"
    __table_args__ = (
        Index("ix_verification_request_user_submitted", "user_id", "submitted_at"),
        Index("ix_verification_request_status", "status"),
        Index(
            "uq_verification_request_open_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'IN_REVIEW')"),
            sqlite_where=text("status IN ('PENDING', 'IN_REVIEW')"),
        ),
        CheckConstraint(
            "status != 'REJECTED' OR rejection_reason IS NOT NULL",
            name="ck_verification_request_rejection_reason",
        ),
        CheckConstraint(
            "status != 'APPROVED' OR expires_at IS NOT NULL",
            name="ck_verification_request_expiry",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="RESTRICT"), nullable=False)
    verification_type = Column(
        SQLEnum(VerificationType, name="verificationtype", native_enum=False, length=20),
        nullable=False,
    )

    # Financial attestation (type-dependent)
    annual_income = Column(Numeric(14, 2), nullable=True)
    income_source = Column(Text, nullable=True)
    net_worth = Column(Numeric(16, 2), nullable=True)
    liquid_net_worth = Column(Numeric(16, 2), nullable=True)
    attestation = Column(Boolean, nullable=False)
    consent_to_verify = Column(Boolean, nullable=False)

    # Review trail
    status = Column(
        SQLEnum(VerificationStatus, name="verificationstatus", native_enum=False, length=20),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    submitted_at = Column(UTCDateTime, nullable=False, default=utcnow)
    reviewed_at = Column(UTCDateTime, nullable=True)
    reviewed_by = Column(Uuid(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    reviewer_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    expires_at = Column(UTCDateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="verifications", foreign_keys=[user_id])
    documents = relationship(
        "VerificationDocument",
        back_populates="verification",
        order_by="VerificationDocument.uploaded_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self):
        """Convert verification request to dictionary representation"""
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "verification_type": self.verification_type.value,
            "annual_income": float(self.annual_income) if self.annual_income is not None else None,
            "income_source": self.income_source,
            "net_worth": float(self.net_worth) if self.net_worth is not None else None,
            "liquid_net_worth": float(self.liquid_net_worth) if self.liquid_net_worth is not None else None,
            "status": self.status.value,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewed_by": str(self.reviewed_by) if self.reviewed_by else None,
            "reviewer_notes": self.reviewer_notes,
            "rejection_reason": self.rejection_reason,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "documents": [doc.to_dict() for doc in self.documents],
        }
