"""Pydantic schemas for user endpoints."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..auth.roles import UserRole


class UserResponse(BaseModel):
    """Local user record. Identity-provider secrets are never stored here."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    external_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    status: str
    created_at: datetime
    updated_at: datetime


class RoleChangeRequest(BaseModel):
    """Request schema for PUT /users/{id}/role (SUPER_ADMIN only)."""
    role: UserRole = Field(..., description="New role", examples=["ADMIN"])


class IdentityEmailAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email_address: str


class IdentityUserData(BaseModel):
    """The user object carried by identity-provider user events.

    Deletion events only carry the id.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    email_addresses: list[IdentityEmailAddress] = Field(default_factory=list)
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def primary_email(self) -> Optional[str]:
        return self.email_addresses[0].email_address if self.email_addresses else None


class IdentityWebhookEvent(BaseModel):
    """Envelope of an identity-provider webhook delivery."""
    model_config = ConfigDict(extra="ignore")

    type: str
    data: dict[str, Any]


class WebhookAck(BaseModel):
    status: str
    user_id: Optional[UUID] = None
