"""Integration tests for the reviews API."""

import pytest

from tests.helpers import bearer


@pytest.mark.integration
@pytest.mark.asyncio
class TestReviewsApi:
    """Tests for /api/v1/reviews."""

    async def test_add_and_list(self, client, users, book):
        response = await client.post(
            "/api/v1/reviews",
            params={"book_id": book.id},
            json={"rate": 4, "comment": "Quietly brilliant"},
            headers=bearer(users["reader"]),
        )

        assert response.status_code == 201
        assert response.json()["book_rate"] == 4.0

        listing = await client.get("/api/v1/reviews", params={"book_id": book.id})
        assert [r["comment"] for r in listing.json()["data"]] == ["Quietly brilliant"]

        detail = await client.get(f"/api/v1/books/{book.id}")
        assert detail.json()["data"]["rate"] == 4.0

    async def test_rate_out_of_range(self, client, users, book):
        response = await client.post(
            "/api/v1/reviews",
            params={"book_id": book.id},
            json={"rate": 9},
            headers=bearer(users["reader"]),
        )

        assert response.status_code == 422

    async def test_duplicate_review(self, client, users, book):
        for expected in (201, 409):
            response = await client.post(
                "/api/v1/reviews",
                params={"book_id": book.id},
                json={"rate": 3},
                headers=bearer(users["reader"]),
            )
            assert response.status_code == expected

    async def test_delete_review(self, client, users, book):
        await client.post(
            "/api/v1/reviews",
            params={"book_id": book.id},
            json={"rate": 2},
            headers=bearer(users["reader"]),
        )

        response = await client.delete(
            "/api/v1/reviews", params={"book_id": book.id}, headers=bearer(users["reader"])
        )

        assert response.status_code == 200
        assert response.json()["book_rate"] == 0.0

