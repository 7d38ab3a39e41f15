"""Upload checks for supporting documents.

The validators return (is_valid, error_message) pairs instead of raising so
the vault decides which error kind to surface.
"""

import os
import re
from typing import Optional, Tuple

SUPPORTED_MIME_TYPES = frozenset({
    'application/pdf',
    'image/jpeg',
    'image/png',
})

# Inclusive
MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_FILENAME_LENGTH = 255

_UNSAFE_HEADER_CHARS = re.compile(r'[^\w\s.-]')
_SEPARATOR_RUNS = re.compile(r'[\s_]+')

CheckResult = Tuple[bool, Optional[str]]


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES


def validate_file_size(size_bytes: int, max_size: Optional[int] = None) -> CheckResult:
    """Check an upload size against the limit.

    Both the size the client declared and the number of bytes actually read
    go through here.

    Example:
        >>> validate_file_size(0)
        (False, 'File is empty (0 bytes)')
    """
    limit = MAX_FILE_SIZE if max_size is None else max_size

    if size_bytes <= 0:
        return False, "File is empty (0 bytes)"
    if size_bytes > limit:
        return False, f"File exceeds maximum size of {limit} bytes (got {size_bytes} bytes)"
    return True, None


def validate_filename(filename: Optional[str]) -> CheckResult:
    """Reject names that are blank, too long, or could escape a directory.

    Example:
        >>> validate_filename('../../etc/passwd')
        (False, 'Filename contains path traversal or directory separators')
    """
    if not filename or not filename.strip():
        return False, "Filename cannot be empty"

    if len(filename) > MAX_FILENAME_LENGTH:
        return False, f"Filename exceeds {MAX_FILENAME_LENGTH} characters (got {len(filename)})"

    if '..' in filename or any(sep in filename for sep in ('/', '\\')):
        return False, "Filename contains path traversal or directory separators"

    if any(ord(ch) < 32 or ord(ch) == 127 for ch in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Reduce a stored filename to something safe inside a quoted
    Content-Disposition value.

    Example:
        >>> sanitize_filename('bank statement (march).pdf')
        'bank_statement_march_.pdf'
    """
    name = _UNSAFE_HEADER_CHARS.sub('_', os.path.basename(filename))
    return _SEPARATOR_RUNS.sub('_', name)[:MAX_FILENAME_LENGTH]
