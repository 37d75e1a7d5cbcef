"""Bearer tokens for catalog callers.

Tokens are HS256 JWTs with `sub` (user id), `role` (role at issue time,
informational only), `type="access"`, `iat` and `exp`. Authorization always
re-reads the role from the stored user.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from catalog.config import get_settings
from catalog.models_auth import SystemRole

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: str, role: SystemRole) -> str:
    """Issue an access token for `user_id`, valid JWT_ACCESS_EXPIRE_MINUTES."""
    settings = get_settings()
    issued = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": user_id,
        "role": role.value,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES),
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """Validate a bearer token and return its user id.

    Raises:
        ValueError: Expired, badly signed, malformed, not an access token,
            or without a subject. The message is safe to return in a 401.
    """
    try:
        claims = jwt.decode(token, get_settings().JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise ValueError("Access token has expired") from e
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise ValueError(f"Invalid access token: {e}") from e

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise ValueError("Token is not an access token")
    if not claims.get("sub"):
        raise ValueError("Token has no subject")
    return claims["sub"]
