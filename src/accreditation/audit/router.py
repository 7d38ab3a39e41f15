"""Read access to the audit trail for reviewers (ADMIN only).

Entries are written by the services in the same transaction as the change
they describe; there is no write endpoint.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..auth.dependencies import require_role
from ..auth.roles import UserRole
from ..bootstrap import Services
from ..dependencies import get_services
from ..models.user import User
from .schemas import AuditLogListResponse, AuditLogResponse
from .service import query_audit_logs

router = APIRouter(prefix="/audit", tags=["Audit Logs"])


@router.get(
    "",
    response_model=AuditLogListResponse,
    summary="Query audit logs (ADMIN only)",
)
def list_audit_logs(
    action: Optional[str] = Query(
        None,
        description="Filter by action (e.g., verification.status_changed)",
        examples=["verification.status_changed"]
    ),
    entity_type: Optional[str] = Query(
        None,
        description="Filter by entity type (e.g., verification_request)",
        examples=["verification_request"]
    ),
    actor_id: Optional[UUID] = Query(None, description="Filter by acting user"),
    start_date: Optional[datetime] = Query(None, description="Minimum created_at (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Maximum created_at (ISO 8601)"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(50, ge=1, le=100, description="Entries per page (max 100)"),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    services: Services = Depends(get_services),
) -> AuditLogListResponse:
    """Query audit logs newest first.

    Example:
        GET /audit?action=document.purged&start_date=2025-01-01T00:00:00Z&page=1
    """
    with services.database.session() as session:
        entries, total = query_audit_logs(
            session,
            action=action,
            entity_type=entity_type,
            actor_id=actor_id,
            start_date=start_date,
            end_date=end_date,
            page=page,
            per_page=per_page,
        )
        return AuditLogListResponse(
            entries=[AuditLogResponse.model_validate(entry) for entry in entries],
            total=total,
            page=page,
            per_page=per_page,
        )
