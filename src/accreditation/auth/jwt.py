"""Identity provider token validation.

Sessions are issued by the external identity provider. This service only
verifies the bearer token and reads the subject, which is the provider's
opaque user id; the local user record is looked up by that id.

Token Claims:
- sub: external user id (opaque string, e.g. "user_2abc...")
- iat / exp: issue and expiry timestamps
- aud: optional, checked when JWT_AUDIENCE is configured
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from ..config import Settings


class TokenError(Exception):
    """Raised when a bearer token cannot be trusted."""
    pass


def decode_identity_token(token: str, settings: Settings) -> str:
    """Validate a bearer token and return the external user id.

    Args:
        token: Encoded JWT from the Authorization header
        settings: Application settings (secret, algorithm, audience)

    Returns:
        str: The `sub` claim

    Raises:
        TokenError: If the signature, expiry, audience or subject is invalid
    """
    options = {"require": ["exp", "sub"]}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise TokenError("Invalid token: missing subject claim")
    return subject


def create_identity_token(
    external_id: str,
    settings: Settings,
    expires_minutes: int = 60,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Issue a token the way the identity provider does.

    Used by local development tooling and tests; production tokens come
    from the provider.
    """
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": external_id,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
