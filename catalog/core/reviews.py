"""Book reviews and the book's average rate.

One review per (user, book). Every add or delete recomputes the book's
rate as the mean of its reviews, rounded to one decimal; a book without
reviews has rate 0.

Tests:
    - tests/unit/test_reviews.py
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from catalog.core.document_store import DocumentStore
from catalog.core.errors import ConflictError, NotFoundError, ValidationError
from catalog.models import Book, Review

logger = logging.getLogger(__name__)

MIN_RATE = 1
MAX_RATE = 5


def average_rate(rates: list[int]) -> float:
    """Mean of `rates` rounded to one decimal, 0 when empty.

    Examples:
        >>> average_rate([5, 4, 4])
        4.3
        >>> average_rate([])
        0.0
    """
    if not rates:
        return 0.0
    return round(sum(rates) / len(rates), 1)


class ReviewService:
    """Add, remove and list reviews of a book."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def _book(self, book_id: str) -> Book:
        book = await self.store.find_by_id(Book, book_id)
        if book is None:
            raise NotFoundError("Book not found")
        return book

    async def _refresh_rate(self, book: Book) -> float:
        rates = await self.store.find_many(select(Review.rate).where(Review.book_id == book.id))
        book.rate = average_rate(rates)
        await self.store.save(book)
        return book.rate

    async def add_review(
        self, book_id: str, user_id: str, rate: int, comment: str | None = None
    ) -> tuple[Review, float]:
        """Create the caller's review and return it with the new book rate."""
        if not MIN_RATE <= rate <= MAX_RATE:
            raise ValidationError(f"rate must be between {MIN_RATE} and {MAX_RATE}")
        book = await self._book(book_id)
        if await self.store.find_one(Review, book_id=book_id, user_id=user_id):
            raise ConflictError("You have already reviewed this book")

        review = await self.store.create(
            Review(book_id=book_id, user_id=user_id, rate=rate, comment=comment)
        )
        new_rate = await self._refresh_rate(book)
        logger.info(f"Review added to book {book_id}, rate now {new_rate}")
        return review, new_rate

    async def delete_review(self, book_id: str, user_id: str) -> tuple[Review, float]:
        book = await self._book(book_id)
        review = await self.store.find_one(Review, book_id=book_id, user_id=user_id)
        if review is None:
            raise NotFoundError("Review not found")

        await self.store.delete(review)
        new_rate = await self._refresh_rate(book)
        return review, new_rate

    async def remove_user_reviews(self, user_id: str) -> list[str]:
        """Delete every review by `user_id` and refresh the affected rates.

        Returns:
            Ids of the books whose rate was recomputed.
        """
        book_ids = await self.store.find_many(
            select(Review.book_id).where(Review.user_id == user_id).distinct()
        )
        if not book_ids:
            return []

        await self.store.delete_where(Review, user_id=user_id)
        for book_id in book_ids:
            book = await self.store.find_by_id(Book, book_id)
            if book is not None:
                await self._refresh_rate(book)
        return book_ids

    async def list_reviews(self, book_id: str) -> list[Review]:
        await self._book(book_id)
        return await self.store.find_many(
            select(Review).where(Review.book_id == book_id).order_by(Review.created_at.desc())
        )
