"""SQLAlchemy model for catalog users.

Kept separate from models.py; imports the shared Base so the users table
lands on the same metadata. A user's optional profile image lives under
{main}/Users/{folder_id}/image.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum as SQLEnum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog.models import Base
from catalog.storage.naming import generate_folder_id


class SystemRole(str, Enum):
    """Caller roles. SUPER_ADMIN is the top elevated role."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    AUTHOR = "author"
    USER = "user"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A catalog user. Authors are users with the AUTHOR role.

    Soft-deleted users keep their row (and email) but are deactivated and
    treated as missing everywhere.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(100), default=None)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    age: Mapped[int | None] = mapped_column(Integer, default=None)
    role: Mapped[SystemRole] = mapped_column(
        SQLEnum(SystemRole), default=SystemRole.USER, nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, default=None)
    image: Mapped[dict[str, Any] | None] = mapped_column(JSON, default=None)
    folder_id: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, default=generate_folder_id
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_by: Mapped[str | None] = mapped_column(String(36), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, role={self.role!r})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "age": self.age,
            "role": self.role.value if self.role else None,
            "description": self.description,
            "image": self.image,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
