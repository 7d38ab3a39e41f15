"""Domain error taxonomy.

Every failure the core surfaces to its callers is one of these kinds.
The HTTP layer maps them to responses in main.py; workers log them.

- ValidationError: malformed or missing input
- EligibilityError: a business threshold is not met
- ConflictError: an invariant would be violated (duplicate open request,
  upload after the submission window, invalid transition, cancel on a
  non-pending request)
- NotFoundError: unknown id, or a record the caller may not see
- IntegrityError: checksum or authentication-tag mismatch on retrieval
- StorageError: persistence backend failure
"""


class AccreditationError(Exception):
    """Base class for all domain errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, message={self.message!r})"


class ValidationError(AccreditationError):
    kind = "validation"


class EligibilityError(AccreditationError):
    kind = "eligibility"


class ConflictError(AccreditationError):
    kind = "conflict"


class NotFoundError(AccreditationError):
    kind = "not_found"


class IntegrityError(AccreditationError):
    """Stored payload does not match its checksum.

    Indicates corruption, a key mismatch, or tampering. Never retried.
    """

    kind = "integrity"


class StorageError(AccreditationError):
    kind = "storage"
