"""VerificationRequest status state machine.

State Flow:
    PENDING → IN_REVIEW → APPROVED | REJECTED
    PENDING → APPROVED | REJECTED (reviewer may decide without IN_REVIEW)
    APPROVED → EXPIRED (time-driven only)

Terminal States: REJECTED, EXPIRED

Expiry is never stored by a reviewer. Reads treat an APPROVED request whose
expires_at has passed as expired without mutating it.
"""

from datetime import datetime
from typing import List, Optional

from ..errors import ConflictError
from ..models.verification import VerificationRequest, VerificationStatus

ALLOWED_TRANSITIONS = {
    VerificationStatus.PENDING: [
        VerificationStatus.IN_REVIEW,
        VerificationStatus.APPROVED,
        VerificationStatus.REJECTED,
    ],
    VerificationStatus.IN_REVIEW: [
        VerificationStatus.APPROVED,
        VerificationStatus.REJECTED,
    ],
    VerificationStatus.APPROVED: [VerificationStatus.EXPIRED],
    VerificationStatus.REJECTED: [],  # Terminal state
    VerificationStatus.EXPIRED: [],  # Terminal state
}

# Targets a reviewer may request explicitly
REVIEW_STATUSES = frozenset({
    VerificationStatus.IN_REVIEW,
    VerificationStatus.APPROVED,
    VerificationStatus.REJECTED,
})


def validate_transition(
    current_status: VerificationStatus,
    new_status: VerificationStatus
) -> None:
    """Validate that a state transition is allowed.

    Raises:
        ConflictError: If transition is not allowed
    """
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    if new_status not in allowed:
        raise ConflictError(
            f"Invalid transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: "
            f"{[s.value for s in allowed]}"
        )


def can_transition(
    current_status: VerificationStatus,
    new_status: VerificationStatus
) -> bool:
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    return new_status in allowed


def get_allowed_transitions(status: VerificationStatus) -> List[VerificationStatus]:
    return ALLOWED_TRANSITIONS.get(status, [])


def is_active(request: VerificationRequest, now: datetime) -> bool:
    """Check whether a request currently grants accreditation.

    Args:
        request: Verification request
        now: Current aware UTC time

    Returns:
        True if APPROVED and expires_at is unset or still in the future
    """
    if request.status != VerificationStatus.APPROVED:
        return False
    return request.expires_at is None or request.expires_at > now


def effective_status(request: VerificationRequest, now: datetime) -> VerificationStatus:
    """Status as seen by readers: lapsed approvals read as EXPIRED."""
    if request.status == VerificationStatus.APPROVED and not is_active(request, now):
        return VerificationStatus.EXPIRED
    return request.status


def days_until_expiry(request: VerificationRequest, now: datetime) -> Optional[int]:
    """Whole days left on an active approval, None if not active or open-ended."""
    if not is_active(request, now) or request.expires_at is None:
        return None
    return (request.expires_at - now).days
