"""User lookups and soft delete.

Profile edits, profile images, provisioning and hard deletes run through the
lifecycle manager with the USER definition. What is left here never touches
the blob store.

Tests:
    - tests/unit/test_users.py
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from catalog.auth.context import AuthContext
from catalog.core.document_store import DocumentStore
from catalog.core.errors import ForbiddenError, NotFoundError
from catalog.models_auth import SystemRole, User

logger = logging.getLogger(__name__)

SOFT_DELETE_ROLES = frozenset({SystemRole.ADMIN, SystemRole.SUPER_ADMIN})


class UserService:
    """Read and deactivate users."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def get_user(self, user_id: str) -> User:
        """Live user by id; soft-deleted users are not found."""
        user = await self.store.find_by_id(User, user_id)
        if user is None or user.is_deleted:
            raise NotFoundError("User not found")
        return user

    async def soft_delete(self, user_id: str, auth: AuthContext) -> User:
        """Mark a user deleted and deactivate it.

        Admins may soft delete themselves; the super admin may soft delete
        anyone. The row, its email and its profile image stay in place.

        Raises:
            ForbiddenError: Wrong role, or an admin targeting someone else.
            NotFoundError: No such live user.
        """
        if not auth.has_role(SOFT_DELETE_ROLES):
            raise ForbiddenError("You are not authorized to soft delete a user")
        user = await self.get_user(user_id)
        if not auth.may_modify(user.id):
            raise ForbiddenError("You are not authorized to soft delete this user")

        user.is_deleted = True
        user.is_active = False
        user.updated_by = auth.caller_id
        await self.store.save(user)
        logger.info(f"User {user.id} soft deleted by {auth.caller_id}")
        return user

    async def list_authors(self) -> list[User]:
        return await self.store.find_many(
            select(User)
            .where(
                User.role == SystemRole.AUTHOR,
                User.is_active.is_(True),
                User.is_deleted.is_(False),
            )
            .order_by(User.username)
        )
