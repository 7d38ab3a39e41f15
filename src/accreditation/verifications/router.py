"""Verification endpoints.

Investor routes (/verifications):
- POST   /verifications                         Submit a request
- GET    /verifications/status                  Own accreditation status and history
- GET    /verifications/{id}                    Own request (any request for ADMIN)
- DELETE /verifications/{id}                    Cancel own pending request
- POST   /verifications/{id}/documents          Attach documents (multipart)
- PUT    /verifications/{id}/review             Reviewer decision (ADMIN)

Administration routes (/admin/verifications, ADMIN unless noted):
- GET    /admin/verifications                   List with filters and pagination
- GET    /admin/verifications/stats             Counts per status
- GET    /admin/verifications/{id}              Detail with owner
- POST   /admin/verifications/batch-review      Same decision for several requests
- DELETE /admin/verifications/{id}              Hard purge (SUPER_ADMIN)
- GET    /admin/verifications/documents/{id}/download

Domain errors propagate to the handlers registered in main.py.
"""

import logging
import math
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from ..auth.dependencies import get_current_user, require_role
from ..auth.roles import UserRole, has_role
from ..dependencies import get_manager, get_vault
from ..documents.validation import sanitize_filename
from ..documents.vault import DocumentVault
from ..errors import NotFoundError, ValidationError
from ..models.document import DocumentType
from ..models.user import User
from ..models.verification import VerificationStatus, VerificationType
from .eligibility import Financials
from .schemas import (
    AdminVerificationResponse,
    BatchReviewRequest,
    BatchReviewResponse,
    DocumentResponse,
    DocumentUploadResponse,
    PurgeResponse,
    ReviewRequest,
    VerificationListResponse,
    VerificationResponse,
    VerificationStatsResponse,
    VerificationStatusResponse,
    VerificationSubmitRequest,
    to_response,
)
from .service import VerificationLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verifications", tags=["Verifications"])
admin_router = APIRouter(prefix="/admin/verifications", tags=["Verification Administration"])


@router.post(
    "",
    response_model=VerificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an accreditation verification request",
)
def submit_verification(
    body: VerificationSubmitRequest,
    current_user: User = Depends(get_current_user),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> VerificationResponse:
    request = manager.create_verification(
        owner_id=current_user.id,
        verification_type=body.verification_type,
        financials=Financials(
            annual_income=body.annual_income,
            income_source=body.income_source,
            net_worth=body.net_worth,
            liquid_net_worth=body.liquid_net_worth,
        ),
        attestation=body.attestation,
        consent_to_verify=body.consent_to_verify,
    )
    return to_response(request, manager.clock())


@router.get(
    "/status",
    response_model=VerificationStatusResponse,
    summary="Current accreditation status and request history",
)
def get_verification_status(
    current_user: User = Depends(get_current_user),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> VerificationStatusResponse:
    summary = manager.get_status(current_user.id)
    now = manager.clock()
    history = [to_response(r, now) for r in summary.history]
    return VerificationStatusResponse(
        is_accredited=summary.is_accredited,
        expires_at=summary.expires_at,
        current_request=history[0] if history else None,
        history=history,
    )


@router.get("/{verification_id}", response_model=VerificationResponse)
def get_verification(
    verification_id: UUID,
    current_user: User = Depends(get_current_user),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> VerificationResponse:
    """Owners see their own requests; ADMIN sees all. Others get 404."""
    request = manager.get_verification(verification_id)
    if request.user_id != current_user.id and not has_role(UserRole(current_user.role), UserRole.ADMIN):
        raise NotFoundError("Verification request not found")
    return to_response(request, manager.clock())


@router.delete(
    "/{verification_id}",
    response_model=VerificationResponse,
    summary="Cancel a pending verification request",
)
def cancel_verification(
    verification_id: UUID,
    current_user: User = Depends(get_current_user),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> VerificationResponse:
    request = manager.cancel(verification_id, caller_id=current_user.id)
    return to_response(request, manager.clock())


@router.post(
    "/{verification_id}/documents",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach supporting documents to a pending request",
)
def upload_documents(
    verification_id: UUID,
    files: List[UploadFile] = File(..., description="PDF, JPEG or PNG, max 10 MiB each"),
    document_type: DocumentType = Form(DocumentType.OTHER),
    current_user: User = Depends(get_current_user),
    manager: VerificationLifecycleManager = Depends(get_manager),
    vault: DocumentVault = Depends(get_vault),
) -> DocumentUploadResponse:
    """Store each file encrypted. Files are stored one by one; a rejected
    file does not undo the ones before it."""
    request = manager.get_verification(verification_id)
    if request.user_id != current_user.id:
        raise NotFoundError("Verification request not found")
    if len(files) > vault.max_files:
        raise ValidationError(f"At most {vault.max_files} files can be uploaded at once")

    stored = []
    for upload in files:
        # Read one byte past the limit so oversized files are detected
        # without buffering them whole
        data = upload.file.read(vault.max_size_bytes + 1)
        metadata = vault.upload(
            request_id=verification_id,
            document_type=document_type,
            file_name=upload.filename or "",
            mime_type=upload.content_type or "",
            size_bytes=upload.size if upload.size is not None else len(data),
            data=data,
            actor_id=current_user.id,
        )
        stored.append(DocumentResponse.model_validate(metadata))

    return DocumentUploadResponse(verification_id=verification_id, documents=stored)


@router.put(
    "/{verification_id}/review",
    response_model=VerificationResponse,
    summary="Record a reviewer decision (ADMIN only)",
)
def review_verification(
    verification_id: UUID,
    body: ReviewRequest,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> VerificationResponse:
    request = manager.update_status(
        verification_id,
        body.status,
        reviewer_id=current_user.id,
        notes=body.notes,
        rejection_reason=body.rejection_reason,
    )
    return to_response(request, manager.clock())


@admin_router.get("", response_model=VerificationListResponse)
def list_verifications(
    status_filter: Optional[VerificationStatus] = Query(None, alias="status"),
    verification_type: Optional[VerificationType] = Query(None),
    user_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(10, ge=1, le=100, description="Entries per page (max 100)"),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> VerificationListResponse:
    items, total = manager.list_verifications(
        status=status_filter,
        verification_type=verification_type,
        user_id=user_id,
        page=page,
        limit=limit,
    )
    now = manager.clock()
    return VerificationListResponse(
        items=[to_response(r, now, admin=True) for r in items],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total else 0,
    )


@admin_router.get("/stats", response_model=VerificationStatsResponse)
def verification_stats(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> VerificationStatsResponse:
    return VerificationStatsResponse(**manager.statistics())


@admin_router.post("/batch-review", response_model=BatchReviewResponse)
def batch_review(
    body: BatchReviewRequest,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> BatchReviewResponse:
    result = manager.batch_review(
        body.verification_ids,
        body.status,
        reviewer_id=current_user.id,
        notes=body.notes,
        rejection_reason=body.rejection_reason,
    )
    return BatchReviewResponse(
        successful=result.successful,
        failed=result.failed,
        total=result.total,
        errors=result.errors,
    )


@admin_router.get("/documents/{document_id}/download")
def download_document(
    document_id: UUID,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    vault: DocumentVault = Depends(get_vault),
) -> Response:
    """Decrypt and stream a document to a reviewer."""
    metadata = vault.get_metadata(document_id)
    data = vault.retrieve(document_id)
    logger.info(
        "Document downloaded by reviewer",
        extra={"document_id": document_id, "user_id": current_user.id},
    )
    return Response(
        content=data,
        media_type=metadata.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{sanitize_filename(metadata.file_name)}"',
            "Cache-Control": "no-store",
        },
    )


@admin_router.get("/{verification_id}", response_model=AdminVerificationResponse)
def get_verification_detail(
    verification_id: UUID,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> AdminVerificationResponse:
    request = manager.get_verification(verification_id)
    return to_response(request, manager.clock(), admin=True)


@admin_router.delete("/{verification_id}", response_model=PurgeResponse)
def purge_verification(
    verification_id: UUID,
    current_user: User = Depends(require_role(UserRole.SUPER_ADMIN)),
    manager: VerificationLifecycleManager = Depends(get_manager),
) -> PurgeResponse:
    """Permanently delete a request and its documents (SUPER_ADMIN only)."""
    deleted = manager.purge_verification(verification_id, actor_id=current_user.id)
    return PurgeResponse(verification_id=verification_id, documents_deleted=deleted)
