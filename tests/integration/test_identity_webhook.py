"""API tests for the identity-provider webhook

Signed user events are the only way accounts reach the local user table, so
these tests go from delivery to an authenticated request.
"""

import dataclasses
import json
import time

import pytest
from fastapi.testclient import TestClient

from accreditation.auth.jwt import create_identity_token
from accreditation.main import create_app
from accreditation.models.audit_log import AuditLog
from accreditation.users.webhook import compute_signature, verify_signature

from tests.conftest import TEST_WEBHOOK_SECRET

WEBHOOK_URL = "/api/v1/webhooks/identity"


def _user_event(event_type, external_id="user_new", email="new@example.com", first_name="Ada", last_name="Byron"):
    data = {"id": external_id}
    if event_type != "user.deleted":
        data.update(
            email_addresses=[{"email_address": email, "id": "idn_1"}],
            first_name=first_name,
            last_name=last_name,
        )
    return {"type": event_type, "object": "event", "data": data}


def _deliver(client, payload, secret=TEST_WEBHOOK_SECRET, timestamp=None, signature=None):
    body = json.dumps(payload).encode() if isinstance(payload, dict) else payload
    timestamp = timestamp or str(int(time.time()))
    headers = {
        "Content-Type": "application/json",
        "X-Identity-Timestamp": timestamp,
        "X-Identity-Signature": signature or compute_signature(secret, timestamp, body),
    }
    return client.post(WEBHOOK_URL, content=body, headers=headers)


def _bearer(settings, external_id):
    return {"Authorization": f"Bearer {create_identity_token(external_id, settings)}"}


class TestUserEvents:
    """Test user lifecycle events drive the identity directory"""

    def test_created_user_can_authenticate(self, client, settings):
        assert client.get("/api/v1/users/me", headers=_bearer(settings, "user_new")).status_code == 401

        response = _deliver(client, _user_event("user.created"))

        assert response.status_code == 200
        assert response.json()["status"] == "synced"

        me = client.get("/api/v1/users/me", headers=_bearer(settings, "user_new"))
        assert me.status_code == 200
        assert me.json()["email"] == "new@example.com"
        assert me.json()["role"] == "INVESTOR"
        assert me.json()["id"] == response.json()["user_id"]

    def test_updated_user_refreshes_details(self, client, settings, investor):
        response = _deliver(
            client,
            _user_event("user.updated", external_id="user_investor", email="renamed@example.com", first_name="Renamed"),
        )

        assert response.status_code == 200
        me = client.get("/api/v1/users/me", headers=_bearer(settings, "user_investor")).json()
        assert me["email"] == "renamed@example.com"
        assert me["first_name"] == "Renamed"
        assert me["id"] == str(investor.id)

    def test_deleted_user_is_suspended(self, client, settings, investor, database):
        response = _deliver(client, _user_event("user.deleted", external_id="user_investor"))

        assert response.status_code == 200
        assert response.json()["status"] == "suspended"
        assert client.get("/api/v1/users/me", headers=_bearer(settings, "user_investor")).status_code == 403

        with database.session() as session:
            assert session.query(AuditLog).filter(
                AuditLog.action == "user.suspended", AuditLog.entity_id == investor.id
            ).count() == 1

    def test_deleted_unknown_user_is_ignored(self, client):
        response = _deliver(client, _user_event("user.deleted", external_id="user_missing"))

        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_unhandled_event_type_is_acknowledged(self, client):
        response = _deliver(client, {"type": "invitation.created", "data": {"id": "inv_1"}})

        assert response.status_code == 200
        assert response.json() == {"status": "ignored", "user_id": None}

    def test_created_without_email(self, client):
        payload = _user_event("user.created")
        payload["data"]["email_addresses"] = []

        response = _deliver(client, payload)

        assert response.status_code == 400
        assert response.json()["error"] == "validation"

    def test_email_owned_by_another_identity(self, client, investor):
        response = _deliver(client, _user_event("user.created", email="investor@example.com"))

        assert response.status_code == 409

    def test_malformed_payload(self, client):
        assert _deliver(client, b"{not json").status_code == 400
        assert _deliver(client, {"data": {}}).status_code == 400
        assert _deliver(client, {"type": "user.created", "data": {"first_name": "No id"}}).status_code == 400


class TestSignatureChecks:
    """Test deliveries are refused unless signed with the configured secret"""

    def test_wrong_secret(self, client, settings):
        response = _deliver(client, _user_event("user.created"), secret="someone-else")

        assert response.status_code == 401
        assert client.get("/api/v1/users/me", headers=_bearer(settings, "user_new")).status_code == 401

    def test_missing_headers(self, client):
        response = client.post(WEBHOOK_URL, json=_user_event("user.created"))
        assert response.status_code == 401

    def test_body_altered_after_signing(self, client):
        timestamp = str(int(time.time()))
        signed_body = json.dumps(_user_event("user.created")).encode()
        signature = compute_signature(TEST_WEBHOOK_SECRET, timestamp, signed_body)

        response = _deliver(
            client,
            _user_event("user.created", email="attacker@example.com"),
            timestamp=timestamp,
            signature=signature,
        )
        assert response.status_code == 401

    def test_stale_timestamp(self, client):
        stale = str(int(time.time()) - 3600)
        assert _deliver(client, _user_event("user.created"), timestamp=stale).status_code == 401

    def test_unconfigured_secret(self, settings, services):
        unconfigured = settings.model_copy(update={"IDENTITY_WEBHOOK_SECRET": None})
        app = create_app(settings=unconfigured, services=dataclasses.replace(services, settings=unconfigured))

        with TestClient(app) as client:
            response = _deliver(client, _user_event("user.created"))

        assert response.status_code == 503


class TestVerifySignature:
    """Test the signature check on its own"""

    BODY = b'{"type":"user.created"}'

    @pytest.mark.parametrize(
        "timestamp,signature",
        [
            (None, "sha256=00"),
            ("1700000000", None),
            ("not-a-number", "sha256=00"),
        ],
    )
    def test_incomplete_headers(self, timestamp, signature):
        assert verify_signature("secret", timestamp, signature, self.BODY, 300, now=1700000000) is False

    def test_tolerance_window(self):
        signature = compute_signature("secret", "1700000000", self.BODY)

        assert verify_signature("secret", "1700000000", signature, self.BODY, 300, now=1700000300) is True
        assert verify_signature("secret", "1700000000", signature, self.BODY, 300, now=1700000301) is False
        assert verify_signature("secret", "1700000000", signature, self.BODY, 300, now=1699999699) is False
