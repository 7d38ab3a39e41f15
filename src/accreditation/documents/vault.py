"""Document Vault.

Stores supporting documents for verification requests encrypted at rest,
verifies their integrity on every read, tracks malware scan status and
discards payloads once their retention window has passed.

Every mutation commits together with its audit entry or not at all. The
plaintext never leaves this module except through retrieve().
"""

import hmac
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session, undefer

from ..audit.service import log_audit_event
from ..database import Database, retry_once_on_storage_error
from ..errors import (
    AccreditationError,
    ConflictError,
    IntegrityError,
    NotFoundError,
    ValidationError,
)
from ..models.base import utcnow
from ..models.document import DocumentType, ScanStatus, VerificationDocument
from ..models.verification import VerificationRequest, VerificationStatus
from ..observability.metrics import (
    document_integrity_failures_total,
    document_scans_total,
    documents_purged_total,
    documents_uploaded_total,
)
from .encryption import DecryptionError, DocumentCipher, compute_checksum
from .ports import ScannerPort, ScanVerdict
from .validation import (
    MAX_FILE_SIZE,
    is_supported_mime_type,
    validate_file_size,
    validate_filename,
)

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30
DEFAULT_MAX_FILES = 5

ScanDispatcher = Callable[[UUID], None]


@dataclass(frozen=True)
class DocumentMetadata:
    """Everything about a stored document except its contents."""
    id: UUID
    verification_id: UUID
    document_type: DocumentType
    file_name: str
    mime_type: str
    size_bytes: int
    checksum: str
    scan_status: ScanStatus
    scan_result: Optional[str]
    uploaded_at: datetime
    scheduled_deletion: datetime
    deleted_at: Optional[datetime]

    @classmethod
    def from_model(cls, document: VerificationDocument) -> "DocumentMetadata":
        return cls(
            id=document.id,
            verification_id=document.verification_id,
            document_type=document.document_type,
            file_name=document.file_name,
            mime_type=document.mime_type,
            size_bytes=document.size_bytes,
            checksum=document.checksum,
            scan_status=document.scan_status,
            scan_result=document.scan_result,
            uploaded_at=document.uploaded_at,
            scheduled_deletion=document.scheduled_deletion,
            deleted_at=document.deleted_at,
        )


def _associated_data(document_id: UUID) -> bytes:
    # Binds each ciphertext to its row
    return f"verification_document:{document_id}".encode("ascii")


class DocumentVault:
    """Encrypted document storage for verification requests.

    Args:
        database: Database handle
        cipher: Process-wide document cipher
        scanner: Scanning backend used for inline scans
        scan_dispatcher: Optional callable that enqueues an asynchronous scan
            for a document id. When set, upload() hands scans to it instead of
            scanning inline.
        clock: Returns the current aware UTC time
        retention_days: Days between upload and payload deletion
        max_size_bytes: Inclusive upload size limit
        max_files: Documents allowed per verification request
    """

    def __init__(
        self,
        database: Database,
        cipher: DocumentCipher,
        scanner: ScannerPort,
        scan_dispatcher: Optional[ScanDispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        max_size_bytes: int = MAX_FILE_SIZE,
        max_files: int = DEFAULT_MAX_FILES,
    ):
        self.database = database
        self.cipher = cipher
        self.scanner = scanner
        self.scan_dispatcher = scan_dispatcher
        self.clock = clock
        self.retention_days = retention_days
        self.max_size_bytes = max_size_bytes
        self.max_files = max_files

    def upload(
        self,
        request_id: UUID,
        document_type: DocumentType,
        file_name: str,
        mime_type: str,
        size_bytes: int,
        data: bytes,
        actor_id: Optional[UUID] = None,
    ) -> DocumentMetadata:
        """Encrypt and store a supporting document.

        Documents can only be attached while the request is PENDING. The
        document row and its audit entry are written in one transaction; the
        scan is triggered after commit.

        Raises:
            NotFoundError: If the verification request does not exist
            ConflictError: If the request is no longer PENDING
            ValidationError: On unsupported type, bad size, empty file or
                unsafe filename, or when the per-request document limit is hit
        """
        if not isinstance(document_type, DocumentType):
            raise ValidationError("Invalid document type")

        with self.database.session() as session:
            request = session.get(VerificationRequest, request_id)
            if not request:
                raise NotFoundError("Verification request not found")
            if request.status != VerificationStatus.PENDING:
                raise ConflictError("Documents can only be uploaded while the request is pending")

            self._validate_upload(file_name, mime_type, size_bytes, data)

            active = [doc for doc in request.documents if not doc.is_deleted]
            if len(active) >= self.max_files:
                raise ValidationError(
                    f"A verification request can carry at most {self.max_files} documents"
                )

            document_id = uuid.uuid4()
            uploaded_at = self.clock()
            payload = self.cipher.encrypt(data, associated_data=_associated_data(document_id))

            document = VerificationDocument(
                id=document_id,
                verification_id=request.id,
                document_type=document_type,
                file_name=file_name,
                mime_type=mime_type,
                size_bytes=len(data),
                ciphertext=payload.ciphertext,
                encryption_iv=payload.iv.hex(),
                checksum=compute_checksum(data),
                scan_status=ScanStatus.PENDING,
                uploaded_at=uploaded_at,
                scheduled_deletion=uploaded_at + timedelta(days=self.retention_days),
            )
            session.add(document)

            log_audit_event(
                db=session,
                action="document.uploaded",
                actor_id=actor_id,
                entity_type="verification_document",
                entity_id=document_id,
                metadata={
                    "verification_id": str(request.id),
                    "document_type": document_type.value,
                    "mime_type": mime_type,
                    "size_bytes": len(data),
                },
            )
            metadata = DocumentMetadata.from_model(document)

        documents_uploaded_total.labels(mime_type=mime_type).inc()
        logger.info(
            "Document stored",
            extra={"document_id": document_id, "verification_id": request_id},
        )

        self._trigger_scan(document_id)
        return metadata

    def _validate_upload(self, file_name: str, mime_type: str, size_bytes: int, data: bytes) -> None:
        if not is_supported_mime_type(mime_type):
            raise ValidationError(
                f"Unsupported file type: {mime_type}. Accepted types are PDF, JPEG and PNG"
            )

        # Declared size and actual size must both respect the limit
        for size in (size_bytes, len(data)):
            is_valid, error = validate_file_size(size, self.max_size_bytes)
            if not is_valid:
                raise ValidationError(error)

        is_valid, error = validate_filename(file_name)
        if not is_valid:
            raise ValidationError(error)

    def _trigger_scan(self, document_id: UUID) -> None:
        if self.scan_dispatcher is not None:
            try:
                self.scan_dispatcher(document_id)
            except Exception:
                # Document stays PENDING; it can be rescanned later
                logger.error(
                    "Failed to enqueue document scan",
                    exc_info=True,
                    extra={"document_id": document_id},
                )
            return

        try:
            self.scan(document_id)
        except AccreditationError as e:
            # Document stays stored; the verdict reflects what scan() recorded
            logger.warning(
                f"Inline scan did not complete: {e.message}",
                extra={"document_id": document_id},
            )

    def scan(self, document_id: UUID) -> ScanStatus:
        """Scan a stored document and record the verdict.

        Scanner failures are recorded as ERROR rather than raised.

        Raises:
            NotFoundError: If the document does not exist or was purged
            IntegrityError: If the stored payload fails verification (the
                scan status is set to ERROR first)
        """
        try:
            plaintext = self._read_plaintext(document_id)
        except IntegrityError:
            self.record_scan_result(document_id, ScanStatus.ERROR, "Payload failed integrity check")
            raise

        try:
            verdict = self.scanner.scan(plaintext)
        except Exception as e:
            logger.error(
                "Scanner failed",
                exc_info=True,
                extra={"document_id": document_id},
            )
            verdict = ScanVerdict(status=ScanStatus.ERROR, detail=f"Scan failed: {type(e).__name__}")

        self.record_scan_result(document_id, verdict.status, verdict.detail)
        return verdict.status

    def record_scan_result(self, document_id: UUID, status: ScanStatus, detail: Optional[str] = None) -> bool:
        """Store a scan verdict.

        Idempotent: a verdict equal to the stored status is ignored, so a
        redelivered worker result changes nothing.

        Returns:
            True if the stored status changed
        """
        if not isinstance(status, ScanStatus) or status == ScanStatus.PENDING:
            raise ValidationError("Scan verdict must be CLEAN, INFECTED or ERROR")

        with self.database.session() as session:
            document = session.get(VerificationDocument, document_id)
            if not document:
                raise NotFoundError("Document not found")
            if document.scan_status == status:
                return False

            previous = document.scan_status
            document.scan_status = status
            document.scan_date = self.clock()
            document.scan_result = detail

            log_audit_event(
                db=session,
                action="document.scanned",
                entity_type="verification_document",
                entity_id=document.id,
                metadata={"old_scan_status": previous.value, "scan_status": status.value},
            )

        document_scans_total.labels(scan_status=status.value).inc()
        if status == ScanStatus.INFECTED:
            logger.warning("Infected document detected", extra={"document_id": document_id})
        else:
            logger.info(f"Document scan recorded: {status.value}", extra={"document_id": document_id})
        return True

    @retry_once_on_storage_error
    def retrieve(self, document_id: UUID) -> bytes:
        """Return the verified plaintext of a document.

        Access control is the caller's responsibility.

        Raises:
            NotFoundError: If the document does not exist or was purged
            IntegrityError: If authentication or the checksum fails
        """
        return self._read_plaintext(document_id)

    def _read_plaintext(self, document_id: UUID) -> bytes:
        with self.database.session() as session:
            document = session.get(
                VerificationDocument,
                document_id,
                options=[undefer(VerificationDocument.ciphertext)],
            )
            if not document or document.is_deleted:
                raise NotFoundError("Document not found")
            iv_hex = document.encryption_iv
            ciphertext = document.ciphertext
            expected_checksum = document.checksum

        try:
            plaintext = self.cipher.decrypt(
                bytes.fromhex(iv_hex),
                ciphertext,
                associated_data=_associated_data(document_id),
            )
        except (DecryptionError, ValueError):
            raise self._integrity_error(document_id, "authentication failed")

        if not hmac.compare_digest(compute_checksum(plaintext), expected_checksum):
            raise self._integrity_error(document_id, "checksum mismatch")

        return plaintext

    def _integrity_error(self, document_id: UUID, reason: str) -> IntegrityError:
        document_integrity_failures_total.inc()
        logger.critical(
            f"Document integrity check failed: {reason}",
            extra={"document_id": document_id},
        )
        return IntegrityError("Document failed integrity verification")

    def get_metadata(self, document_id: UUID) -> DocumentMetadata:
        with self.database.session() as session:
            document = session.get(VerificationDocument, document_id)
            if not document:
                raise NotFoundError("Document not found")
            return DocumentMetadata.from_model(document)

    def purge_expired(self) -> int:
        """Discard payloads whose retention window has passed.

        Rows are kept with deleted_at set; only the ciphertext goes. Safe to
        run repeatedly: already purged rows are not selected again.

        Returns:
            Number of documents purged in this run
        """
        now = self.clock()

        with self.database.session() as session:
            documents = (
                session.query(VerificationDocument)
                .filter(
                    VerificationDocument.scheduled_deletion <= now,
                    VerificationDocument.deleted_at.is_(None),
                )
                .all()
            )

            for document in documents:
                document.deleted_at = now
                document.ciphertext = None
                log_audit_event(
                    db=session,
                    action="document.purged",
                    entity_type="verification_document",
                    entity_id=document.id,
                    metadata={
                        "verification_id": str(document.verification_id),
                        "scheduled_deletion": document.scheduled_deletion.isoformat(),
                    },
                )
            count = len(documents)

        if count:
            documents_purged_total.inc(count)
        logger.info(f"Retention sweep purged {count} documents")
        return count

    def delete_for_verification(self, session: Session, request_id: UUID) -> int:
        """Hard-delete all documents of a verification request.

        Runs inside the caller's transaction; the caller writes the audit
        entry for the enclosing operation.
        """
        documents = (
            session.query(VerificationDocument)
            .filter(VerificationDocument.verification_id == request_id)
            .all()
        )
        for document in documents:
            session.delete(document)
        session.flush()
        return len(documents)
