"""User SQLAlchemy model"""

import re
import uuid

from sqlalchemy import CheckConstraint, Column, Text, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, UTCDateTime, utcnow

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class User(Base):
    """Local mirror of an identity-provider account.

    Authentication happens at the identity provider; this row carries the
    opaque external id, contact details used for notifications, and the
    role that drives authorization.
    """
    __tablename__ = "user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(Text, nullable=False, unique=True)
    email = Column(Text, nullable=False, unique=True)
    first_name = Column(Text, nullable=True)
    last_name = Column(Text, nullable=True)
    role = Column(Text, nullable=False, default="INVESTOR", server_default="INVESTOR")
    status = Column(Text, nullable=False, default="ACTIVE", server_default="ACTIVE")
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    verifications = relationship(
        "VerificationRequest",
        back_populates="user",
        foreign_keys="VerificationRequest.user_id",
    )

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "role IN ('INVESTOR', 'ADMIN', 'SUPER_ADMIN')",
            name='ck_user_role'
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'SUSPENDED')",
            name='ck_user_status'
        ),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return value.lower()

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def to_dict(self):
        """Convert user to dictionary representation"""
        return {
            "id": str(self.id),
            "external_id": self.external_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
