"""Unit tests for catalog.models and catalog.models_auth."""

import pytest

from catalog.models import generate_slug
from catalog.models_auth import SystemRole


@pytest.mark.fast
class TestGenerateSlug:
    """Tests for generate_slug()."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Science Fiction", "science-fiction"),
            ("  C++ & You!  ", "c-you"),
            ("The Left Hand of Darkness", "the-left-hand-of-darkness"),
            ("already-slugged", "already-slugged"),
        ],
    )
    def test_slugs(self, text, expected):
        assert generate_slug(text) == expected

    def test_truncated(self):
        assert len(generate_slug("a" * 300)) == 150


@pytest.mark.asyncio
class TestToDict:
    """Tests for the to_dict() serializers."""

    async def test_category(self, category, users):
        data = category.to_dict()

        assert data["name"] == "Science Fiction"
        assert data["slug"] == "science-fiction"
        assert data["image"]["remote_id"].startswith("catalog/Categories/")
        assert data["added_by"] == users["admin"].id
        assert data["created_at"]

    async def test_book(self, book, category, users):
        data = book.to_dict()

        assert data["category_id"] == category.id
        assert data["author_id"] == users["author"].id
        assert data["category_folder_id"] == category.folder_id
        assert len(data["gallery"]) == 2
        assert data["rate"] == 0.0
        assert data["pages"] == 387

    async def test_user(self, users):
        data = users["author"].to_dict()

        assert data["role"] == SystemRole.AUTHOR.value
        assert data["email"] == "author@example.com"
        assert data["is_active"] is True
