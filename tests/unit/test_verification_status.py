"""Unit tests for the VerificationRequest status state machine"""

from datetime import datetime, timedelta, timezone

import pytest

from accreditation.errors import ConflictError
from accreditation.models.verification import VerificationRequest, VerificationStatus
from accreditation.verifications.status import (
    ALLOWED_TRANSITIONS,
    REVIEW_STATUSES,
    can_transition,
    days_until_expiry,
    effective_status,
    get_allowed_transitions,
    is_active,
    validate_transition,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _request(status, expires_at=None):
    return VerificationRequest(status=status, expires_at=expires_at)


class TestTransitions:
    """Test allowed and forbidden transitions"""

    def test_every_status_has_an_entry(self):
        """Test the transition table covers every status"""
        assert set(ALLOWED_TRANSITIONS) == set(VerificationStatus)

    def test_pending_transitions(self):
        """Test PENDING can move to review or a decision"""
        assert can_transition(VerificationStatus.PENDING, VerificationStatus.IN_REVIEW) is True
        assert can_transition(VerificationStatus.PENDING, VerificationStatus.APPROVED) is True
        assert can_transition(VerificationStatus.PENDING, VerificationStatus.REJECTED) is True
        assert can_transition(VerificationStatus.PENDING, VerificationStatus.EXPIRED) is False

    def test_in_review_transitions(self):
        """Test IN_REVIEW only moves to a decision"""
        assert can_transition(VerificationStatus.IN_REVIEW, VerificationStatus.APPROVED) is True
        assert can_transition(VerificationStatus.IN_REVIEW, VerificationStatus.REJECTED) is True
        assert can_transition(VerificationStatus.IN_REVIEW, VerificationStatus.PENDING) is False
        assert can_transition(VerificationStatus.IN_REVIEW, VerificationStatus.IN_REVIEW) is False

    def test_approved_only_expires(self):
        """Test APPROVED can only become EXPIRED"""
        assert get_allowed_transitions(VerificationStatus.APPROVED) == [VerificationStatus.EXPIRED]
        assert can_transition(VerificationStatus.APPROVED, VerificationStatus.REJECTED) is False

    @pytest.mark.parametrize("terminal", [VerificationStatus.REJECTED, VerificationStatus.EXPIRED])
    def test_terminal_states(self, terminal):
        """Test REJECTED and EXPIRED allow no transitions"""
        assert get_allowed_transitions(terminal) == []
        for target in VerificationStatus:
            assert can_transition(terminal, target) is False

    def test_validate_transition_raises_conflict(self):
        """Test invalid transitions raise ConflictError with a useful message"""
        with pytest.raises(ConflictError) as exc_info:
            validate_transition(VerificationStatus.REJECTED, VerificationStatus.APPROVED)
        assert "REJECTED -> APPROVED" in exc_info.value.message

    def test_validate_transition_allows_valid(self):
        """Test valid transitions pass silently"""
        validate_transition(VerificationStatus.PENDING, VerificationStatus.IN_REVIEW)

    def test_expired_is_not_a_review_target(self):
        """Test reviewers cannot request EXPIRED or PENDING"""
        assert VerificationStatus.EXPIRED not in REVIEW_STATUSES
        assert VerificationStatus.PENDING not in REVIEW_STATUSES


class TestExpirySemantics:
    """Test time-based accreditation checks"""

    def test_approved_with_future_expiry_is_active(self):
        request = _request(VerificationStatus.APPROVED, NOW + timedelta(days=1))
        assert is_active(request, NOW) is True
        assert effective_status(request, NOW) == VerificationStatus.APPROVED

    def test_approved_at_exact_expiry_is_not_active(self):
        """Test expiry instant itself no longer grants accreditation"""
        request = _request(VerificationStatus.APPROVED, NOW)
        assert is_active(request, NOW) is False
        assert effective_status(request, NOW) == VerificationStatus.EXPIRED

    def test_lapsed_approval_reads_as_expired_without_mutation(self):
        request = _request(VerificationStatus.APPROVED, NOW - timedelta(seconds=1))
        assert effective_status(request, NOW) == VerificationStatus.EXPIRED
        assert request.status == VerificationStatus.APPROVED

    def test_approved_without_expiry_is_active(self):
        assert is_active(_request(VerificationStatus.APPROVED), NOW) is True

    @pytest.mark.parametrize("status", [
        VerificationStatus.PENDING,
        VerificationStatus.IN_REVIEW,
        VerificationStatus.REJECTED,
        VerificationStatus.EXPIRED,
    ])
    def test_other_statuses_are_never_active(self, status):
        assert is_active(_request(status, NOW + timedelta(days=30)), NOW) is False

    def test_days_until_expiry(self):
        request = _request(VerificationStatus.APPROVED, NOW + timedelta(days=10, hours=3))
        assert days_until_expiry(request, NOW) == 10
        assert days_until_expiry(_request(VerificationStatus.PENDING), NOW) is None
