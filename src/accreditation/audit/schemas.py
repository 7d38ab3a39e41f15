"""Pydantic schemas for audit log endpoints.

Audit logs are read-only (no create/update/delete operations).
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuditLogResponse(BaseModel):
    """Response schema for audit log entries."""
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "actor_id": "123e4567-e89b-12d3-a456-426614174000",
                "action": "verification.status_changed",
                "entity_type": "verification_request",
                "entity_id": "abc12345-6789-0abc-def0-123456789012",
                "metadata": {"old_status": "PENDING", "new_status": "APPROVED"},
                "ip_address": None,
                "user_agent": None,
                "created_at": "2025-01-04T12:00:00Z"
            }
        },
    )

    id: UUID = Field(..., description="Audit log entry unique identifier")
    actor_id: Optional[UUID] = Field(None, description="User who performed the action (None for system jobs)")
    action: str = Field(..., description="Event action (verification.submitted, document.purged, etc.)")
    entity_type: Optional[str] = Field(None, description="Type of entity affected")
    entity_id: Optional[UUID] = Field(None, description="ID of affected entity")
    metadata: Optional[dict] = Field(
        None,
        validation_alias="metadata_json",
        description="Additional context as JSON"
    )
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client User-Agent header")
    created_at: datetime = Field(..., description="Event timestamp")


class AuditLogListResponse(BaseModel):
    """Response schema for audit log queries, with pagination metadata."""
    entries: list[AuditLogResponse] = Field(..., description="List of audit log entries")
    total: int = Field(..., description="Total number of entries matching filters")
    page: int = Field(..., description="Current page number")
    per_page: int = Field(..., description="Entries per page")
