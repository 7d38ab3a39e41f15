"""Pytest fixtures shared by unit and integration tests.

Provides reusable test fixtures for:
- In-memory SQLite database (StaticPool, fresh schema per test)
- A controllable clock for expiry and retention tests
- A recording notifier
- Services wired with a fixed test encryption key
- Users with different roles (INVESTOR, ADMIN, SUPER_ADMIN)
- A FastAPI TestClient and bearer token headers

Usage:
    def test_submit(client, investor, auth_headers):
        response = client.post("/api/v1/verifications", json={...}, headers=auth_headers(investor))
        assert response.status_code == 201
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient

from accreditation.auth.jwt import create_identity_token
from accreditation.auth.roles import UserRole
from accreditation.bootstrap import Services, build_services
from accreditation.config import Settings
from accreditation.database import Database
from accreditation.main import create_app
from accreditation.models.user import User
from accreditation.models.verification import VerificationRequest, VerificationType
from accreditation.notifications.email import RecordingNotifier
from accreditation.verifications.eligibility import Financials

# 32 bytes, 64 hex characters
TEST_ENCRYPTION_KEY = (
    "0f1e2d3c4b5a6978"
    "8796a5b4c3d2e1f0"
    "0011223344556677"
    "8899aabbccddeeff"
)
TEST_JWT_SECRET = "test-jwt-secret-key-256-bits-minimum-length-required-for-security"
TEST_WEBHOOK_SECRET = "test-identity-webhook-secret"

# Minimal payloads carrying each accepted format's magic bytes
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00"
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        DOCUMENT_ENCRYPTION_KEY=TEST_ENCRYPTION_KEY,
        JWT_SECRET=TEST_JWT_SECRET,
        IDENTITY_WEBHOOK_SECRET=TEST_WEBHOOK_SECRET,
        LOG_JSON=False,
        ENVIRONMENT="test",
    )


@pytest.fixture
def database() -> Generator[Database, None, None]:
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def services(settings, database, notifier, clock) -> Services:
    return build_services(settings, database=database, notifier=notifier, clock=clock)


@pytest.fixture
def manager(services):
    return services.manager


@pytest.fixture
def vault(services):
    return services.vault


@pytest.fixture
def directory(services):
    return services.directory


def _create_user(directory, external_id: str, email: str, role: UserRole) -> User:
    user = directory.sync_from_identity(external_id, email, "Test", role.value.title())
    if role != UserRole.INVESTOR:
        user = directory.change_role(user.id, role, actor_id=user.id)
    return user


@pytest.fixture
def investor(directory) -> User:
    return _create_user(directory, "user_investor", "investor@example.com", UserRole.INVESTOR)


@pytest.fixture
def other_investor(directory) -> User:
    return _create_user(directory, "user_other", "other@example.com", UserRole.INVESTOR)


@pytest.fixture
def admin_user(directory) -> User:
    return _create_user(directory, "user_admin", "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def super_admin_user(directory) -> User:
    return _create_user(directory, "user_super", "super@example.com", UserRole.SUPER_ADMIN)


@pytest.fixture
def income_financials() -> Financials:
    return Financials(annual_income=Decimal("250000"), income_source="Salary")


@pytest.fixture
def pending_request(manager, investor, income_financials) -> VerificationRequest:
    return manager.create_verification(
        investor.id,
        VerificationType.INCOME,
        income_financials,
        attestation=True,
        consent_to_verify=True,
    )


@pytest.fixture
def client(settings, services) -> Generator[TestClient, None, None]:
    app = create_app(settings=settings, services=services)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(settings) -> Callable[[User], Dict[str, str]]:
    """Build Authorization headers for a user, as the identity provider would."""

    def _headers(user: User) -> Dict[str, str]:
        token = create_identity_token(user.external_id, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers
