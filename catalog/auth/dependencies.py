"""Caller resolution for the catalog routers.

Roles are read from the stored user on every request, so a role change
applies immediately regardless of what an older token claims.

With AUTH_ENABLED=false (development only) the caller id comes from the
X-User-ID header instead of a bearer token. The user must still exist.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.context import AuthContext
from catalog.auth.jwt_handler import decode_access_token
from catalog.config import get_settings
from catalog.database import get_db_session
from catalog.models_auth import User

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
DEV_USER_HEADER = "X-User-ID"
ADMIN_KEY_HEADER = "X-Admin-Key"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _caller_id(request: Request, auth_enabled: bool) -> str:
    if not auth_enabled:
        caller = request.headers.get(DEV_USER_HEADER)
        if caller:
            return caller
        raise _unauthorized(f"{DEV_USER_HEADER} header is required while auth is off")

    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX):
        raise _unauthorized("Bearer token required")
    try:
        return decode_access_token(header[len(BEARER_PREFIX):])
    except ValueError as e:
        raise _unauthorized(str(e))


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> User:
    """Load the calling user.

    Raises:
        HTTPException 401: No usable credentials, or the user is unknown or
            deactivated.
    """
    user = await session.get(User, _caller_id(request, get_settings().AUTH_ENABLED))
    if user is not None and user.is_active and not user.is_deleted:
        return user
    raise _unauthorized("Unknown or inactive user")


async def get_auth_context(user: User = Depends(get_current_user)) -> AuthContext:
    """AuthContext for the lifecycle manager."""
    return AuthContext(caller_id=user.id, role=user.role)


async def require_admin_key(request: Request) -> None:
    """Guard for provisioning routes: X-Admin-Key must equal ADMIN_API_KEY.

    An empty ADMIN_API_KEY turns the guard into a permanent 403.
    """
    expected = get_settings().ADMIN_API_KEY
    if not expected:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Provisioning is disabled")

    supplied = request.headers.get(ADMIN_KEY_HEADER, "")
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning(f"Rejected {request.url.path}: bad {ADMIN_KEY_HEADER}")
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Admin key rejected")
