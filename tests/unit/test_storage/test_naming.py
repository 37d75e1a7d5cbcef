"""Tests for catalog.storage.naming."""

import pytest

from catalog.storage.naming import (
    FOLDER_ID_LENGTH,
    book_parent_prefix,
    category_parent_prefix,
    derive,
    generate_folder_id,
    resource_prefix,
    user_parent_prefix,
)


@pytest.mark.fast
class TestDerive:
    """Tests for derive()."""

    def test_joins_parent_folder_and_role(self):
        assert derive("catalog/Categories", "a3f2", "image") == "catalog/Categories/a3f2/image"

    def test_is_deterministic(self):
        first = derive("catalog/Categories/a3f2/Books", "9c1e", "cover")
        second = derive("catalog/Categories/a3f2/Books", "9c1e", "cover")
        assert first == second

    def test_role_changes_only_last_segment(self):
        cover = derive("catalog/Categories/a3f2/Books", "9c1e", "cover")
        gallery = derive("catalog/Categories/a3f2/Books", "9c1e", "gallery")

        assert cover.rsplit("/", 1)[0] == gallery.rsplit("/", 1)[0]
        assert cover.rsplit("/", 1)[1] == "cover"
        assert gallery.rsplit("/", 1)[1] == "gallery"

    def test_strips_stray_slashes(self):
        assert derive("catalog/Categories/", "/a3f2/", "image/") == "catalog/Categories/a3f2/image"

    @pytest.mark.parametrize(
        "parent,folder,role",
        [
            ("", "a3f2", "image"),
            ("catalog/Categories", "", "image"),
            ("catalog/Categories", "a3f2", ""),
            ("catalog/Categories", "/", "image"),
        ],
    )
    def test_empty_segment_raises(self, parent, folder, role):
        with pytest.raises(ValueError):
            derive(parent, folder, role)


@pytest.mark.fast
class TestPrefixes:
    """Tests for the collection prefixes."""

    def test_category_parent_prefix(self):
        assert category_parent_prefix("catalog") == "catalog/Categories"

    def test_book_parent_prefix_nests_under_category(self):
        assert book_parent_prefix("catalog", "a3f2") == "catalog/Categories/a3f2/Books"

    def test_book_subtree_is_inside_category_subtree(self):
        category = resource_prefix(category_parent_prefix("catalog"), "a3f2")
        book = resource_prefix(book_parent_prefix("catalog", "a3f2"), "9c1e")

        assert book.startswith(category + "/")

    def test_user_profiles_live_outside_categories(self):
        assert user_parent_prefix("catalog/") == "catalog/Users"
        assert derive(user_parent_prefix("catalog"), "b7d0", "image") == "catalog/Users/b7d0/image"

    def test_empty_main_folder_raises(self):
        with pytest.raises(ValueError):
            category_parent_prefix("")


@pytest.mark.fast
class TestGenerateFolderId:
    """Tests for generate_folder_id()."""

    def test_default_length(self):
        assert len(generate_folder_id()) == FOLDER_ID_LENGTH

    def test_custom_length(self):
        assert len(generate_folder_id(12)) == 12

    def test_is_hex(self):
        int(generate_folder_id(), 16)
