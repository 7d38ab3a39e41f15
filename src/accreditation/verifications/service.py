"""Verification Lifecycle Manager.

Owns accredited-investor verification requests from submission to a
reviewer's decision:

- Submission: attestation, eligibility thresholds, one open request per user
- Review: state machine transitions, 365-day validity on approval
- Reads: accreditation status computed against the clock, so approvals lapse
  without any job rewriting rows
- Administration: listing, statistics, batch review and hard purge

Every state change commits together with its audit entry. Notifications go
out after commit and never undo a decision.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError as SAIntegrityError
from sqlalchemy.orm import Session, selectinload

from ..audit.service import log_audit_event
from ..database import Database, retry_once_on_storage_error
from ..documents.vault import DocumentVault
from ..errors import AccreditationError, ConflictError, NotFoundError, ValidationError
from ..models.base import utcnow
from ..models.user import User
from ..models.verification import (
    OPEN_STATUSES,
    VerificationRequest,
    VerificationStatus,
    VerificationType,
)
from ..notifications.ports import NotificationPort
from ..observability.metrics import (
    notification_failures_total,
    verification_status_changes_total,
    verifications_submitted_total,
)
from .eligibility import Financials, check_attestation, check_eligibility, normalize_financials
from .status import REVIEW_STATUSES, is_active, validate_transition

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 365
CANCELLED_REASON = "Cancelled by user"
STATUS_TEMPLATE = "verification_status"


@dataclass
class VerificationStatusSummary:
    """Accreditation status of one user at a point in time."""
    is_accredited: bool
    current_request: Optional[VerificationRequest]
    history: List[VerificationRequest]
    expires_at: Optional[datetime] = None


@dataclass
class BatchReviewResult:
    successful: List[UUID] = field(default_factory=list)
    failed: List[UUID] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)


class VerificationLifecycleManager:
    """Creates and reviews verification requests.

    Args:
        database: Database handle
        vault: Document vault, used to remove documents on purge
        notifier: Notification sink for review outcomes
        clock: Returns the current aware UTC time
        validity_days: How long an approval grants accreditation
    """

    def __init__(
        self,
        database: Database,
        vault: DocumentVault,
        notifier: NotificationPort,
        clock: Callable[[], datetime] = utcnow,
        validity_days: int = DEFAULT_VALIDITY_DAYS,
    ):
        self.database = database
        self.vault = vault
        self.notifier = notifier
        self.clock = clock
        self.validity_days = validity_days

    def create_verification(
        self,
        owner_id: UUID,
        verification_type: VerificationType,
        financials: Financials,
        attestation: bool,
        consent_to_verify: bool,
    ) -> VerificationRequest:
        """Submit a new verification request.

        Raises:
            ValidationError: Missing attestation or consent, negative amounts,
                unknown verification type
            EligibilityError: Threshold for the claimed basis not met
            NotFoundError: Unknown owner
            ConflictError: Owner already has a PENDING or IN_REVIEW request
        """
        check_attestation(attestation, consent_to_verify)
        financials = normalize_financials(
            annual_income=financials.annual_income,
            income_source=financials.income_source,
            net_worth=financials.net_worth,
            liquid_net_worth=financials.liquid_net_worth,
        )
        check_eligibility(verification_type, financials)

        with self.database.session() as session:
            if not session.get(User, owner_id):
                raise NotFoundError("User not found")

            if self._find_open_request(session, owner_id):
                raise ConflictError("You already have a verification request in progress")

            request = VerificationRequest(
                user_id=owner_id,
                verification_type=verification_type,
                annual_income=financials.annual_income,
                income_source=financials.income_source,
                net_worth=financials.net_worth,
                liquid_net_worth=financials.liquid_net_worth,
                attestation=True,
                consent_to_verify=True,
                status=VerificationStatus.PENDING,
                submitted_at=self.clock(),
                documents=[],
            )
            session.add(request)

            # A concurrent submission that passed the pre-check trips the
            # partial unique index here
            try:
                session.flush()
            except SAIntegrityError:
                raise ConflictError("You already have a verification request in progress")

            log_audit_event(
                db=session,
                action="verification.submitted",
                actor_id=owner_id,
                entity_type="verification_request",
                entity_id=request.id,
                metadata={"verification_type": verification_type.value},
            )

        verifications_submitted_total.labels(verification_type=verification_type.value).inc()
        logger.info(
            f"Verification submitted: {verification_type.value}",
            extra={"verification_id": request.id, "user_id": owner_id},
        )
        return request

    def _find_open_request(self, session: Session, owner_id: UUID) -> Optional[VerificationRequest]:
        return (
            session.query(VerificationRequest)
            .filter(
                VerificationRequest.user_id == owner_id,
                VerificationRequest.status.in_(OPEN_STATUSES),
            )
            .first()
        )

    def update_status(
        self,
        request_id: UUID,
        new_status: VerificationStatus,
        reviewer_id: UUID,
        notes: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> VerificationRequest:
        """Apply a reviewer decision.

        Approval sets expires_at to reviewed_at plus the validity period.
        The owner is notified after commit; a failed notification is logged
        and the decision stands.

        Raises:
            NotFoundError: Unknown request
            ValidationError: Target is not IN_REVIEW, APPROVED or REJECTED,
                or REJECTED without a reason
            ConflictError: Transition not allowed from the current status
        """
        with self.database.session() as session:
            request = session.get(
                VerificationRequest,
                request_id,
                options=[selectinload(VerificationRequest.user)],
            )
            if not request:
                raise NotFoundError("Verification request not found")

            if not isinstance(new_status, VerificationStatus) or new_status not in REVIEW_STATUSES:
                raise ValidationError("Status must be one of IN_REVIEW, APPROVED or REJECTED")

            reason = rejection_reason.strip() if rejection_reason else None
            if new_status == VerificationStatus.REJECTED and not reason:
                raise ValidationError("A rejection reason is required when rejecting a verification")

            old_status = request.status
            validate_transition(old_status, new_status)

            now = self.clock()
            request.status = new_status
            request.reviewed_at = now
            request.reviewed_by = reviewer_id
            if notes is not None:
                request.reviewer_notes = notes
            request.rejection_reason = reason if new_status == VerificationStatus.REJECTED else None
            request.expires_at = (
                now + timedelta(days=self.validity_days)
                if new_status == VerificationStatus.APPROVED
                else None
            )

            log_audit_event(
                db=session,
                action="verification.status_changed",
                actor_id=reviewer_id,
                entity_type="verification_request",
                entity_id=request.id,
                metadata={
                    "old_status": old_status.value,
                    "new_status": new_status.value,
                    "reviewer_id": str(reviewer_id) if reviewer_id else None,
                },
            )

            owner = request.user
            recipient = owner.email
            params = {
                "verification_id": str(request.id),
                "status": new_status.value,
                "first_name": owner.first_name,
                "rejection_reason": request.rejection_reason,
                "reviewer_notes": request.reviewer_notes,
                "expires_at": request.expires_at.date().isoformat() if request.expires_at else None,
            }

        verification_status_changes_total.labels(new_status=new_status.value).inc()
        logger.info(
            f"Verification status changed: {old_status.value} -> {new_status.value}",
            extra={"verification_id": request_id, "user_id": reviewer_id},
        )

        self._notify(recipient, params)
        return request

    def _notify(self, email: str, params: Dict[str, object]) -> None:
        try:
            self.notifier.notify(email, STATUS_TEMPLATE, params)
        except Exception:
            notification_failures_total.labels(template=STATUS_TEMPLATE).inc()
            logger.error(
                "Failed to send verification status notification",
                exc_info=True,
                extra={"verification_id": params.get("verification_id")},
            )

    @retry_once_on_storage_error
    def get_status(self, user_id: UUID) -> VerificationStatusSummary:
        """Current accreditation of a user plus full request history.

        A user is accredited while any request is APPROVED and its expiry is
        unset or in the future. The stored status of a lapsed approval is not
        touched.
        """
        now = self.clock()
        with self.database.session() as session:
            history = (
                session.query(VerificationRequest)
                .filter(VerificationRequest.user_id == user_id)
                .order_by(VerificationRequest.submitted_at.desc())
                .all()
            )

        active = [r for r in history if is_active(r, now)]
        expiries = [r.expires_at for r in active if r.expires_at is not None]
        return VerificationStatusSummary(
            is_accredited=bool(active),
            current_request=history[0] if history else None,
            history=history,
            expires_at=max(expiries) if expiries else None,
        )

    def cancel(self, request_id: UUID, caller_id: UUID) -> VerificationRequest:
        """Withdraw a pending request on behalf of its owner.

        The request becomes REJECTED with a system reason; the audit trail
        records it as a cancellation.

        Raises:
            NotFoundError: Unknown request, or the caller is not its owner
            ConflictError: The request is no longer PENDING
        """
        with self.database.session() as session:
            request = session.get(VerificationRequest, request_id)
            if not request or request.user_id != caller_id:
                raise NotFoundError("Verification request not found")

            if request.status != VerificationStatus.PENDING:
                raise ConflictError("Only pending requests may be cancelled")

            request.status = VerificationStatus.REJECTED
            request.rejection_reason = CANCELLED_REASON
            request.reviewed_at = self.clock()

            log_audit_event(
                db=session,
                action="verification.cancelled",
                actor_id=caller_id,
                entity_type="verification_request",
                entity_id=request.id,
                metadata={"old_status": VerificationStatus.PENDING.value},
            )

        logger.info("Verification cancelled by owner", extra={"verification_id": request_id})
        return request

    @retry_once_on_storage_error
    def get_verification(self, request_id: UUID) -> VerificationRequest:
        with self.database.session() as session:
            request = session.get(
                VerificationRequest,
                request_id,
                options=[selectinload(VerificationRequest.user)],
            )
            if not request:
                raise NotFoundError("Verification request not found")
            return request

    @retry_once_on_storage_error
    def list_verifications(
        self,
        status: Optional[VerificationStatus] = None,
        verification_type: Optional[VerificationType] = None,
        user_id: Optional[UUID] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[VerificationRequest], int]:
        """List requests newest first.

        Filtering by APPROVED excludes lapsed approvals and filtering by
        EXPIRED includes them, matching what get_status reports.

        Returns:
            Tuple of (requests on the page, total matching requests)
        """
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")

        now = self.clock()
        with self.database.session() as session:
            query = session.query(VerificationRequest).options(selectinload(VerificationRequest.user))

            if status == VerificationStatus.APPROVED:
                query = query.filter(
                    VerificationRequest.status == VerificationStatus.APPROVED,
                    or_(VerificationRequest.expires_at.is_(None), VerificationRequest.expires_at > now),
                )
            elif status == VerificationStatus.EXPIRED:
                query = query.filter(or_(
                    VerificationRequest.status == VerificationStatus.EXPIRED,
                    and_(
                        VerificationRequest.status == VerificationStatus.APPROVED,
                        VerificationRequest.expires_at <= now,
                    ),
                ))
            elif status is not None:
                query = query.filter(VerificationRequest.status == status)

            if verification_type is not None:
                query = query.filter(VerificationRequest.verification_type == verification_type)
            if user_id is not None:
                query = query.filter(VerificationRequest.user_id == user_id)

            total = query.count()
            items = (
                query.order_by(VerificationRequest.submitted_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        return items, total

    @retry_once_on_storage_error
    def statistics(self) -> Dict[str, int]:
        """Request counts per effective status, plus the total."""
        now = self.clock()
        with self.database.session() as session:
            rows = (
                session.query(VerificationRequest.status, func.count(VerificationRequest.id))
                .group_by(VerificationRequest.status)
                .all()
            )
            lapsed = (
                session.query(func.count(VerificationRequest.id))
                .filter(
                    VerificationRequest.status == VerificationStatus.APPROVED,
                    VerificationRequest.expires_at <= now,
                )
                .scalar()
            ) or 0

        stats = {s.value.lower(): 0 for s in VerificationStatus}
        for status, count in rows:
            stats[status.value.lower()] = count
        stats["approved"] -= lapsed
        stats["expired"] += lapsed
        stats["total"] = sum(count for _, count in rows)
        return stats

    def batch_review(
        self,
        request_ids: Iterable[UUID],
        new_status: VerificationStatus,
        reviewer_id: UUID,
        notes: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> BatchReviewResult:
        """Apply the same decision to several requests.

        Each request is reviewed in its own transaction, so one failure does
        not hold back the rest.
        """
        ids = list(dict.fromkeys(request_ids))
        if not ids:
            raise ValidationError("At least one verification id is required")

        result = BatchReviewResult()
        for request_id in ids:
            try:
                self.update_status(request_id, new_status, reviewer_id, notes, rejection_reason)
                result.successful.append(request_id)
            except AccreditationError as e:
                result.failed.append(request_id)
                result.errors[str(request_id)] = e.message

        logger.info(f"Batch review: {len(result.successful)} succeeded, {len(result.failed)} failed")
        return result

    def purge_verification(self, request_id: UUID, actor_id: UUID) -> int:
        """Permanently delete a request and its documents.

        Returns:
            Number of documents deleted with the request

        Raises:
            NotFoundError: Unknown request
        """
        with self.database.session() as session:
            request = session.get(VerificationRequest, request_id)
            if not request:
                raise NotFoundError("Verification request not found")

            owner_id = request.user_id
            status = request.status
            deleted_documents = self.vault.delete_for_verification(session, request.id)

            # Documents are gone; do not let the cascade revisit them
            session.expire(request, ["documents"])
            session.delete(request)

            log_audit_event(
                db=session,
                action="verification.purged",
                actor_id=actor_id,
                entity_type="verification_request",
                entity_id=request_id,
                metadata={
                    "user_id": str(owner_id),
                    "status": status.value,
                    "documents_deleted": deleted_documents,
                },
            )

        logger.warning(
            f"Verification purged with {deleted_documents} documents",
            extra={"verification_id": request_id, "user_id": actor_id},
        )
        return deleted_documents
