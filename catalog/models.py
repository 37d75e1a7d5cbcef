"""SQLAlchemy models for the catalog.

Categories and books are composite resources: a row here plus a subtree of
blobs under the row's folder_id. Asset columns hold AssetDescriptor JSON
({"remote_id", "url"}), never the blob itself.

Examples:
    >>> from catalog.models import Book, generate_slug
    >>> generate_slug("The Left Hand of Darkness")
    'the-left-hand-of-darkness'

Tests:
    - tests/unit/test_models.py
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def generate_slug(text: str) -> str:
    """Generate a URL-safe slug.

    Examples:
        >>> generate_slug("Science Fiction")
        'science-fiction'
        >>> generate_slug("  C++ & You!  ")
        'c-you'
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug).strip("-")
    return slug[:150]


class Category(Base):
    """A book category. Owns the `{main}/Categories/{folder_id}` subtree.

    Attributes:
        id: Unique identifier (UUID)
        name: Display name, unique
        slug: URL-safe name, unique
        image: AssetDescriptor JSON for the category image
        folder_id: Token naming the category's blob subtree, unique
        added_by: Creator's user id
        updated_by: Last editor's user id
    """

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    image: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    folder_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    added_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), default=None
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<Category(name={self.name!r}, folder_id={self.folder_id!r})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "image": self.image,
            "folder_id": self.folder_id,
            "added_by": self.added_by,
            "updated_by": self.updated_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Book(Base):
    """A book. Owns `{main}/Categories/{category_folder_id}/Books/{folder_id}`.

    Attributes:
        cover: AssetDescriptor JSON, required
        document: AssetDescriptor JSON (the PDF), required
        gallery: List of AssetDescriptor JSON, may be empty
        category_folder_id: Parent category's folder_id, captured at creation
        rate: Average review rate, one decimal
    """

    __tablename__ = "books"
    __table_args__ = (
        UniqueConstraint("title", "category_id", "author_id", name="uq_books_natural_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(50), nullable=False)
    release_date: Mapped[str] = mapped_column(String(32), nullable=False)
    pages: Mapped[int] = mapped_column(Integer, nullable=False)

    folder_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    category_folder_id: Mapped[str] = mapped_column(String(32), nullable=False)

    cover: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    gallery: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    rate: Mapped[float] = mapped_column(Float, default=0.0)

    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("categories.id"), index=True, nullable=False
    )
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), index=True, nullable=False
    )
    added_by: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), default=None
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<Book(title={self.title!r}, folder_id={self.folder_id!r})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "language": self.language,
            "release_date": self.release_date,
            "pages": self.pages,
            "folder_id": self.folder_id,
            "category_folder_id": self.category_folder_id,
            "cover": self.cover,
            "document": self.document,
            "gallery": list(self.gallery or []),
            "rate": self.rate,
            "category_id": self.category_id,
            "author_id": self.author_id,
            "added_by": self.added_by,
            "updated_by": self.updated_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Review(Base):
    """A user's rating of a book. One per (user, book)."""

    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_reviews_user_book"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id"), index=True, nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    rate: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<Review(book_id={self.book_id!r}, rate={self.rate})>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "rate": self.rate,
            "comment": self.comment,
            "created_at": _iso(self.created_at),
        }
