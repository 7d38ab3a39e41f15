"""Verification Lifecycle Manager and verification endpoints."""

from .eligibility import Financials
from .service import BatchReviewResult, VerificationLifecycleManager, VerificationStatusSummary

__all__ = [
    "Financials",
    "VerificationLifecycleManager",
    "VerificationStatusSummary",
    "BatchReviewResult",
]
