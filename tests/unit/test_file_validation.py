"""Unit tests for document upload validation utilities"""

from accreditation.documents.validation import (
    MAX_FILE_SIZE,
    SUPPORTED_MIME_TYPES,
    is_supported_mime_type,
    sanitize_filename,
    validate_file_size,
    validate_filename,
)


class TestMimeTypeValidation:
    """Test MIME type validation for uploads"""

    def test_supported_mime_types_constant(self):
        """Test SUPPORTED_MIME_TYPES contains exactly PDF, JPEG and PNG"""
        assert SUPPORTED_MIME_TYPES == {'application/pdf', 'image/jpeg', 'image/png'}

    def test_supported_types(self):
        assert is_supported_mime_type('application/pdf') is True
        assert is_supported_mime_type('image/jpeg') is True
        assert is_supported_mime_type('image/png') is True

    def test_unsupported_types(self):
        """Test office documents, executables and missing types are rejected"""
        assert is_supported_mime_type('application/msword') is False
        assert is_supported_mime_type('application/x-msdownload') is False
        assert is_supported_mime_type('image/gif') is False
        assert is_supported_mime_type('') is False
        assert is_supported_mime_type(None) is False


class TestFileSizeValidation:
    """Test file size validation"""

    def test_max_file_size_constant(self):
        """Test MAX_FILE_SIZE is 10 MiB"""
        assert MAX_FILE_SIZE == 10 * 1024 * 1024

    def test_exactly_at_limit(self):
        """Test 10 MiB is allowed (inclusive)"""
        is_valid, error = validate_file_size(MAX_FILE_SIZE)
        assert is_valid is True
        assert error is None

    def test_one_byte_over_limit(self):
        is_valid, error = validate_file_size(MAX_FILE_SIZE + 1)
        assert is_valid is False
        assert "exceeds maximum size" in error

    def test_empty_file(self):
        is_valid, error = validate_file_size(0)
        assert is_valid is False
        assert "empty" in error

    def test_custom_limit(self):
        assert validate_file_size(2048, max_size=1024)[0] is False
        assert validate_file_size(1024, max_size=1024)[0] is True


class TestFilenameValidation:
    """Test filename validation"""

    def test_valid_filename(self):
        assert validate_filename('bank_statement_march.pdf') == (True, None)

    def test_unicode_filename(self):
        assert validate_filename('Kontoauszug_März.pdf')[0] is True

    def test_empty_filename(self):
        assert validate_filename('')[0] is False
        assert validate_filename('   ')[0] is False
        assert validate_filename(None)[0] is False

    def test_path_traversal(self):
        is_valid, error = validate_filename('../../etc/passwd')
        assert is_valid is False
        assert "path traversal" in error

    def test_windows_separator(self):
        assert validate_filename('C:\\Users\\tax.pdf')[0] is False

    def test_control_characters(self):
        assert validate_filename('tax\x00.pdf')[0] is False
        assert validate_filename('tax\n.pdf')[0] is False

    def test_too_long(self):
        assert validate_filename('a' * 252 + '.pdf')[0] is False
        assert validate_filename('a' * 251 + '.pdf')[0] is True


class TestFilenameSanitization:
    """Test filename sanitization for Content-Disposition"""

    def test_spaces_and_brackets(self):
        assert sanitize_filename('bank statement (march).pdf') == 'bank_statement_march_.pdf'

    def test_quotes_removed(self):
        assert '"' not in sanitize_filename('my "tax" return.pdf')

    def test_plain_name_unchanged(self):
        assert sanitize_filename('w2-2024.pdf') == 'w2-2024.pdf'
