"""Identity-provider webhook.

- POST /webhooks/identity   user.created, user.updated, user.deleted

This is how accounts reach the local user table: created and updated users
are synced, deleted users are suspended. Other event types are acknowledged
and ignored.

Deliveries are signed with IDENTITY_WEBHOOK_SECRET:

    X-Identity-Timestamp: <unix seconds>
    X-Identity-Signature: sha256=<hex HMAC-SHA256 of "<timestamp>.<raw body>">

Unsigned, mis-signed or stale deliveries are refused with 401. While the
secret is unset the endpoint answers 503 instead of accepting unsigned events.
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from ..bootstrap import Services
from ..dependencies import get_services
from ..errors import ValidationError
from .schemas import IdentityUserData, IdentityWebhookEvent, WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

SIGNATURE_PREFIX = "sha256="
SYNC_EVENTS = ("user.created", "user.updated")
DELETE_EVENT = "user.deleted"


def compute_signature(secret: str, timestamp: str, body: bytes) -> str:
    """Signature header value for a delivery."""
    signed = timestamp.encode() + b"." + body
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    secret: str,
    timestamp: Optional[str],
    signature: Optional[str],
    body: bytes,
    tolerance_seconds: int,
    now: Optional[float] = None,
) -> bool:
    """Check the signature and reject timestamps outside the tolerance window."""
    if not timestamp or not signature:
        return False
    try:
        sent_at = int(timestamp)
    except ValueError:
        return False

    now = time.time() if now is None else now
    if abs(now - sent_at) > tolerance_seconds:
        logger.warning(f"Identity webhook timestamp outside tolerance: {timestamp}")
        return False

    return hmac.compare_digest(signature, compute_signature(secret, timestamp, body))


def _parse_event(body: bytes) -> IdentityWebhookEvent:
    try:
        return IdentityWebhookEvent.model_validate_json(body)
    except pydantic.ValidationError:
        raise ValidationError("Malformed webhook payload")


def _parse_user(event: IdentityWebhookEvent) -> IdentityUserData:
    try:
        return IdentityUserData.model_validate(event.data)
    except pydantic.ValidationError:
        raise ValidationError(f"Malformed user data in {event.type} event")


@router.post(
    "/identity",
    response_model=WebhookAck,
    summary="Receive identity-provider user events",
)
async def identity_webhook(
    request: Request,
    x_identity_timestamp: Optional[str] = Header(default=None),
    x_identity_signature: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> WebhookAck:
    settings = services.settings
    if not settings.IDENTITY_WEBHOOK_SECRET:
        logger.error("Identity webhook received but IDENTITY_WEBHOOK_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity webhook is not configured",
        )

    body = await request.body()
    if not verify_signature(
        settings.IDENTITY_WEBHOOK_SECRET,
        x_identity_timestamp,
        x_identity_signature,
        body,
        settings.IDENTITY_WEBHOOK_TOLERANCE_SECONDS,
    ):
        logger.warning("Identity webhook rejected: invalid signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )

    event = _parse_event(body)
    directory = services.directory

    if event.type in SYNC_EVENTS:
        data = _parse_user(event)
        user = await run_in_threadpool(
            directory.sync_from_identity,
            data.id,
            data.primary_email,
            data.first_name,
            data.last_name,
        )
        logger.info(f"Identity webhook {event.type} applied", extra={"user_id": user.id})
        return WebhookAck(status="synced", user_id=user.id)

    if event.type == DELETE_EVENT:
        data = _parse_user(event)
        found = await run_in_threadpool(directory.deactivate_external_user, data.id)
        return WebhookAck(status="suspended" if found else "ignored")

    logger.info(f"Identity webhook event ignored: {event.type}")
    return WebhookAck(status="ignored")
