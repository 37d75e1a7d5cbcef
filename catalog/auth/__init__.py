"""Auth module: caller context, JWT access tokens and FastAPI dependencies."""

from catalog.auth.context import AuthContext
from catalog.auth.dependencies import get_auth_context, get_current_user, require_admin_key
from catalog.auth.jwt_handler import create_access_token, decode_access_token

__all__ = [
    "AuthContext",
    "create_access_token",
    "decode_access_token",
    "get_auth_context",
    "get_current_user",
    "require_admin_key",
]
