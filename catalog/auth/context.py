"""Caller identity handed to every lifecycle call."""

from __future__ import annotations

from dataclasses import dataclass

from catalog.models_auth import SystemRole


@dataclass(frozen=True)
class AuthContext:
    """Who is calling, and with which role.

    Attributes:
        caller_id: User id of the caller.
        role: The caller's system role.
    """

    caller_id: str
    role: SystemRole

    @property
    def is_elevated(self) -> bool:
        """True for the top elevated role, which may edit anything."""
        return self.role == SystemRole.SUPER_ADMIN

    def has_role(self, roles) -> bool:
        return self.role in roles

    def owns(self, created_by: str | None) -> bool:
        return created_by is not None and created_by == self.caller_id

    def may_modify(self, created_by: str | None) -> bool:
        """Update/Delete rule: top elevated role, or the original creator."""
        return self.is_elevated or self.owns(created_by)
