"""
Mom's Yums Backend - Supabase Token Verification
==================================================

What:  Turns a Supabase access token into an AuthUser.
How:   python-jose verifies the HS256 signature with SUPABASE_JWT_SECRET,
       the expiry and the "authenticated" audience, then reads the user id
       (`sub`), e-mail and the name from `user_metadata`.
Who:   The get_current_user dependency (app/dependencies.py).

Display name resolution (first non-empty wins):
    user_metadata.display_name → user_metadata.full_name
    → e-mail local part → "User"
"""

import logging
import uuid
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from app.config import Settings
from app.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_DISPLAY_NAME = "User"


class AuthUser(BaseModel):
    """The signed-in user, as far as the backend needs to know."""

    id: uuid.UUID
    email: Optional[str] = None
    display_name: str = DEFAULT_DISPLAY_NAME


def resolve_display_name(email: Optional[str], metadata: Optional[Dict[str, Any]]) -> str:
    metadata = metadata or {}
    for key in ("display_name", "full_name"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    if email and "@" in email:
        local_part = email.split("@", 1)[0]
        if local_part:
            return local_part
    return DEFAULT_DISPLAY_NAME


def decode_access_token(token: str, settings: Settings) -> AuthUser:
    """
    Verify a Supabase access token.

    Raises:
        AuthenticationError: missing secret, bad signature, expired token,
            wrong audience, or no usable `sub` claim.
    """
    if not settings.supabase_jwt_secret:
        logger.error("SUPABASE_JWT_SECRET is not configured; rejecting token")
        raise AuthenticationError()

    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.supabase_jwt_audience,
        )
    except ExpiredSignatureError:
        logger.info("Access token has expired")
        raise AuthenticationError(message="Your session has expired. Please sign in again.")
    except JWTError as e:
        logger.warning("Access token validation failed: %s", str(e))
        raise AuthenticationError(message="Invalid access token.")

    subject = payload.get("sub")
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError:
        logger.warning("Access token has an unusable subject: %r", subject)
        raise AuthenticationError(message="Invalid access token.")

    email = payload.get("email")
    return AuthUser(
        id=user_id,
        email=email,
        display_name=resolve_display_name(email, payload.get("user_metadata")),
    )
