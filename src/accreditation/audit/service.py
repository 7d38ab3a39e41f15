"""Audit logging service.

This service provides a centralized interface for creating immutable audit log
entries. Every state change in the core appends exactly one entry inside the
same transaction as the change itself.

Audit Events:
- verification.submitted, verification.status_changed, verification.cancelled
- verification.purged
- document.uploaded, document.scanned, document.purged
- user.synced, user.suspended, user.role_changed
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names - callers must use the dotted names listed in the module docstring.
    The entry is flushed, not committed: it becomes durable together with the
    caller's transaction, or not at all.

    Args:
        db: Database session
        action: Event action (e.g., "verification.submitted")
        actor_id: User who performed the action (None for system jobs)
        entity_type: Type of entity affected (e.g., "verification_request")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (values must be JSON-serializable)
        ip_address: Client IP address
        user_agent: Client User-Agent header

    Returns:
        AuditLog: The created audit log entry
    """
    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry


def query_audit_logs(
    db: Session,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    actor_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    per_page: int = 50,
) -> Tuple[List[AuditLog], int]:
    """Query audit entries newest first.

    Returns:
        Tuple of (entries for the requested page, total matching entries)
    """
    query = db.query(AuditLog)

    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)
    if start_date:
        query = query.filter(AuditLog.created_at >= start_date)
    if end_date:
        query = query.filter(AuditLog.created_at <= end_date)

    total = query.count()
    entries = (
        query.order_by(AuditLog.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return entries, total
