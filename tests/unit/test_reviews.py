"""Unit tests for catalog.core.reviews."""

import pytest

from catalog.core.errors import ConflictError, NotFoundError, ValidationError
from catalog.core.reviews import ReviewService, average_rate


@pytest.fixture
def reviews(store):
    return ReviewService(store)


@pytest.mark.fast
class TestAverageRate:
    """Tests for average_rate()."""

    @pytest.mark.parametrize(
        "rates,expected",
        [([], 0.0), ([5], 5.0), ([5, 4, 4], 4.3), ([1, 2], 1.5), ([3, 3, 4], 3.3)],
    )
    def test_rounded_mean(self, rates, expected):
        assert average_rate(rates) == expected


@pytest.mark.asyncio
class TestReviewService:
    """Tests for ReviewService."""

    async def test_add_review_updates_rate(self, reviews, book, users):
        review, rate = await reviews.add_review(book.id, users["reader"].id, 4, "Good")
        assert review.comment == "Good"
        assert rate == 4.0

        _, rate = await reviews.add_review(book.id, users["other_author"].id, 5)
        assert rate == 4.5
        assert book.rate == 4.5

    async def test_second_review_by_same_user_conflicts(self, reviews, book, users):
        await reviews.add_review(book.id, users["reader"].id, 4)

        with pytest.raises(ConflictError):
            await reviews.add_review(book.id, users["reader"].id, 2)

    @pytest.mark.parametrize("rate", [0, 6])
    async def test_rate_out_of_range(self, reviews, book, users, rate):
        with pytest.raises(ValidationError):
            await reviews.add_review(book.id, users["reader"].id, rate)

    async def test_missing_book(self, reviews, users):
        with pytest.raises(NotFoundError):
            await reviews.add_review("missing", users["reader"].id, 3)

    async def test_delete_review_recomputes_rate(self, reviews, book, users):
        await reviews.add_review(book.id, users["reader"].id, 2)
        await reviews.add_review(book.id, users["other_author"].id, 4)

        _, rate = await reviews.delete_review(book.id, users["reader"].id)

        assert rate == 4.0
        _, rate = await reviews.delete_review(book.id, users["other_author"].id)
        assert rate == 0.0

    async def test_delete_missing_review(self, reviews, book, users):
        with pytest.raises(NotFoundError, match="Review"):
            await reviews.delete_review(book.id, users["reader"].id)

    async def test_list_reviews(self, reviews, book, users):
        await reviews.add_review(book.id, users["reader"].id, 3)
        await reviews.add_review(book.id, users["other_author"].id, 5)

        listed = await reviews.list_reviews(book.id)

        assert {r.user_id for r in listed} == {users["reader"].id, users["other_author"].id}
