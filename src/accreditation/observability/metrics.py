"""Prometheus metrics for the accreditation service.

Defines operational counters for the verification and document pipelines.
"""

from prometheus_client import Counter

verifications_submitted_total = Counter(
    "accreditation_verifications_submitted_total",
    "Total verification requests submitted",
    ["verification_type"]
)

verification_status_changes_total = Counter(
    "accreditation_verification_status_changes_total",
    "Total reviewer status transitions",
    ["new_status"]
)

documents_uploaded_total = Counter(
    "accreditation_documents_uploaded_total",
    "Total documents stored in the vault",
    ["mime_type"]
)

document_scans_total = Counter(
    "accreditation_document_scans_total",
    "Total scan verdicts recorded",
    ["scan_status"]
)

document_integrity_failures_total = Counter(
    "accreditation_document_integrity_failures_total",
    "Retrievals refused because the payload failed verification"
)

documents_purged_total = Counter(
    "accreditation_documents_purged_total",
    "Total document payloads discarded by the retention sweep"
)

notification_failures_total = Counter(
    "accreditation_notification_failures_total",
    "Notifications that could not be delivered",
    ["template"]
)
