"""Unit tests for identity token validation and settings"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from accreditation.auth.jwt import TokenError, create_identity_token, decode_identity_token
from accreditation.config import Settings, get_settings

SECRET = "unit-test-secret-with-enough-length-for-hs256-signatures"


@pytest.fixture
def settings():
    return Settings(_env_file=None, JWT_SECRET=SECRET)


class TestDecodeIdentityToken:
    """Test bearer token verification"""

    def test_round_trip_returns_subject(self, settings):
        token = create_identity_token("user_2abcdef", settings)
        assert decode_identity_token(token, settings) == "user_2abcdef"

    def test_expired_token(self, settings):
        token = create_identity_token("user_1", settings, expires_minutes=-1)
        with pytest.raises(TokenError, match="expired"):
            decode_identity_token(token, settings)

    def test_wrong_secret(self, settings):
        other = Settings(_env_file=None, JWT_SECRET="another-secret-of-reasonable-length-for-tests")
        token = create_identity_token("user_1", other)
        with pytest.raises(TokenError, match="Invalid token"):
            decode_identity_token(token, settings)

    def test_missing_exp_rejected(self, settings):
        token = jwt.encode({"sub": "user_1"}, SECRET, algorithm="HS256")
        with pytest.raises(TokenError):
            decode_identity_token(token, settings)

    def test_missing_sub_rejected(self, settings):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(TokenError):
            decode_identity_token(token, settings)

    def test_none_algorithm_rejected(self, settings):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "user_1", "exp": exp}, None, algorithm="none")
        with pytest.raises(TokenError):
            decode_identity_token(token, settings)

    def test_audience_checked_when_configured(self):
        settings = Settings(_env_file=None, JWT_SECRET=SECRET, JWT_AUDIENCE="accreditation")
        token = create_identity_token("user_1", settings)
        assert decode_identity_token(token, settings) == "user_1"

        no_audience = Settings(_env_file=None, JWT_SECRET=SECRET)
        with pytest.raises(TokenError):
            decode_identity_token(create_identity_token("user_1", no_audience), settings)

    def test_garbage(self, settings):
        with pytest.raises(TokenError):
            decode_identity_token("not-a-jwt", settings)


class TestSettings:
    """Test configuration defaults and environment loading"""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.DOCUMENT_ENCRYPTION_KEY is None
        assert settings.DOCUMENT_RETENTION_DAYS == 30
        assert settings.VERIFICATION_VALIDITY_DAYS == 365
        assert settings.MAX_UPLOAD_SIZE_BYTES == 10 * 1024 * 1024
        assert settings.SCAN_ASYNC is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DOCUMENT_RETENTION_DAYS", "7")
        monkeypatch.setenv("SCAN_ASYNC", "true")
        settings = Settings(_env_file=None)
        assert settings.DOCUMENT_RETENTION_DAYS == 7
        assert settings.SCAN_ASYNC is True

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
