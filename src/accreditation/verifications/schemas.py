"""Pydantic schemas for verification endpoints.

Enum fields reject unknown values before anything reaches the lifecycle
manager. Business rules (attestation, thresholds, negative amounts) are
enforced by the manager itself so every caller gets the same errors.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.document import DocumentType, ScanStatus
from ..models.verification import VerificationRequest, VerificationStatus, VerificationType
from .status import effective_status


class VerificationSubmitRequest(BaseModel):
    """Request schema for POST /verifications."""
    verification_type: VerificationType = Field(
        ...,
        description="Basis of the accreditation claim",
        examples=["INCOME"]
    )
    annual_income: Optional[Decimal] = Field(
        None,
        description="Annual income in USD (INCOME requests)",
        examples=["250000"]
    )
    income_source: Optional[str] = Field(
        None,
        max_length=500,
        description="Source of income (required for INCOME requests)",
        examples=["Salary"]
    )
    net_worth: Optional[Decimal] = Field(
        None,
        description="Net worth in USD excluding primary residence (NET_WORTH requests)",
        examples=["1500000"]
    )
    liquid_net_worth: Optional[Decimal] = Field(None, description="Liquid net worth in USD")
    attestation: bool = Field(False, description="User attests the information is accurate")
    consent_to_verify: bool = Field(False, description="User consents to verification")


class ReviewRequest(BaseModel):
    """Request schema for PUT /verifications/{id}/review."""
    status: VerificationStatus = Field(
        ...,
        description="Target status: IN_REVIEW, APPROVED or REJECTED",
        examples=["APPROVED"]
    )
    notes: Optional[str] = Field(None, max_length=2000)
    rejection_reason: Optional[str] = Field(
        None,
        max_length=2000,
        description="Required when status is REJECTED"
    )


class BatchReviewRequest(ReviewRequest):
    verification_ids: List[UUID] = Field(..., min_length=1, max_length=100)


class DocumentResponse(BaseModel):
    """Document metadata. The payload is never part of a response."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_type: DocumentType
    file_name: str
    mime_type: str
    size_bytes: int
    scan_status: ScanStatus
    scan_result: Optional[str] = None
    uploaded_at: datetime
    scheduled_deletion: datetime
    deleted_at: Optional[datetime] = None


class DocumentUploadResponse(BaseModel):
    verification_id: UUID
    documents: List[DocumentResponse]


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class VerificationResponse(BaseModel):
    """Verification request as returned by the API.

    status is the stored status; effective_status reports a lapsed approval
    as EXPIRED.
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    verification_type: VerificationType
    annual_income: Optional[float] = None
    income_source: Optional[str] = None
    net_worth: Optional[float] = None
    liquid_net_worth: Optional[float] = None
    status: VerificationStatus
    effective_status: Optional[VerificationStatus] = None
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[UUID] = None
    reviewer_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    documents: List[DocumentResponse] = []


class AdminVerificationResponse(VerificationResponse):
    user: Optional[UserSummary] = None


class VerificationStatusResponse(BaseModel):
    """Response schema for GET /verifications/status."""
    is_accredited: bool
    expires_at: Optional[datetime] = None
    current_request: Optional[VerificationResponse] = None
    history: List[VerificationResponse]


class VerificationListResponse(BaseModel):
    items: List[AdminVerificationResponse]
    total: int
    page: int
    limit: int
    pages: int


class VerificationStatsResponse(BaseModel):
    total: int
    pending: int
    in_review: int
    approved: int
    rejected: int
    expired: int


class BatchReviewResponse(BaseModel):
    successful: List[UUID]
    failed: List[UUID]
    total: int
    errors: Dict[str, str]


class PurgeResponse(BaseModel):
    verification_id: UUID
    documents_deleted: int


def to_response(request: VerificationRequest, now: datetime, admin: bool = False) -> VerificationResponse:
    """Build a response with the status readers should see at `now`."""
    schema = AdminVerificationResponse if admin else VerificationResponse
    response = schema.model_validate(request)
    response.effective_status = effective_status(request, now)
    return response
