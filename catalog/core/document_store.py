"""Document store adapter over an async SQLAlchemy session.

Each write commits on its own so the lifecycle manager observes a definite
outcome per step. Store exceptions are mapped here and never leak:
IntegrityError becomes ConflictError, any other SQLAlchemyError becomes
UpstreamFailure.

Examples:
    >>> store = DocumentStore(session)
    >>> category = await store.find_one(Category, name="Fantasy")
    >>> await store.create(Book(...))

Tests:
    - tests/unit/test_document_store.py
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.core.errors import ConflictError, UpstreamFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentStore:
    """Create / find / save / delete for catalog records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback failed: {e}")

    async def _commit(self, action: str, doc: Any = None) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self._rollback()
            logger.info(f"Unique constraint violated on {action}: {e.orig}")
            raise ConflictError(f"{_label(doc)} conflicts with an existing record") from e
        except SQLAlchemyError as e:
            await self._rollback()
            logger.error(f"Document store {action} failed: {e}")
            raise UpstreamFailure(f"Document store {action} failed") from e

    async def find_one(self, model: type[T], **filters: Any) -> T | None:
        """First record of `model` whose columns equal `filters`."""
        try:
            result = await self.session.execute(select(model).filter_by(**filters).limit(1))
        except SQLAlchemyError as e:
            logger.error(f"Document store lookup failed: {e}")
            raise UpstreamFailure("Document store lookup failed") from e
        return result.scalar_one_or_none()

    async def find_by_id(self, model: type[T], id: str) -> T | None:
        try:
            return await self.session.get(model, id)
        except SQLAlchemyError as e:
            logger.error(f"Document store lookup failed: {e}")
            raise UpstreamFailure("Document store lookup failed") from e

    async def find_many(self, query) -> list[Any]:
        """Run a composed select and return its scalars."""
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Document store query failed: {e}")
            raise UpstreamFailure("Document store query failed") from e
        return list(result.scalars().all())

    async def create(self, doc: T) -> T:
        """Insert a new record.

        Raises:
            ConflictError: A unique index rejected the record.
            UpstreamFailure: Any other store failure.
        """
        self.session.add(doc)
        await self._commit("create", doc)
        return doc

    async def save(self, doc: T) -> T:
        """Persist changes made to a loaded record."""
        self.session.add(doc)
        await self._commit("save", doc)
        return doc

    async def delete(self, doc: Any) -> None:
        try:
            await self.session.delete(doc)
        except SQLAlchemyError as e:
            await self._rollback()
            raise UpstreamFailure("Document store delete failed") from e
        await self._commit("delete", doc)

    async def delete_where(self, model: type, **filters: Any) -> int:
        """Delete every record of `model` matching `filters`.

        Returns:
            Number of rows removed.
        """
        stmt = delete(model)
        for name, value in filters.items():
            column = getattr(model, name)
            if isinstance(value, (list, tuple, set)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self._rollback()
            logger.error(f"Document store bulk delete failed: {e}")
            raise UpstreamFailure("Document store delete failed") from e
        await self._commit("delete")
        return result.rowcount or 0

    async def rollback(self) -> None:
        """Discard pending changes on loaded records."""
        await self._rollback()


def _label(doc: Any) -> str:
    if doc is None:
        return "Record"
    return type(doc).__name__
