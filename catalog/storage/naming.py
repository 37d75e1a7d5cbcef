"""Folder keys for blob storage.

Every asset lives below its resource's private subtree, which itself lives
below the owning category, or below the users root for profile images:

    {main}/Categories/{category_folder_id}/{role}
    {main}/Categories/{category_folder_id}/Books/{book_folder_id}/{role}
    {main}/Users/{user_folder_id}/{role}

All functions here are pure except generate_folder_id().

Examples:
    >>> from catalog.storage.naming import derive, category_parent_prefix
    >>> derive(category_parent_prefix("catalog"), "a3f2", "image")
    'catalog/Categories/a3f2/image'
    >>> derive(book_parent_prefix("catalog", "a3f2"), "9c1e", "cover")
    'catalog/Categories/a3f2/Books/9c1e/cover'
"""

from __future__ import annotations

import uuid

FOLDER_ID_LENGTH = 4


def generate_folder_id(length: int = FOLDER_ID_LENGTH) -> str:
    """Generate a short random folder token.

    Collisions are not checked here; the unique index on folder_id
    rejects them at persist time.
    """
    return uuid.uuid4().hex[:length]


def _require(**parts: str) -> None:
    for name, value in parts.items():
        if not value or not value.strip("/"):
            raise ValueError(f"{name} must be a non-empty path segment")


def resource_prefix(parent_prefix: str, own_folder_id: str) -> str:
    """Path of a resource's whole subtree.

    Args:
        parent_prefix: Prefix of the parent collection.
        own_folder_id: The resource's folder token.

    Returns:
        '{parent_prefix}/{own_folder_id}'
    """
    _require(parent_prefix=parent_prefix, own_folder_id=own_folder_id)
    return f"{parent_prefix.rstrip('/')}/{own_folder_id.strip('/')}"


def derive(parent_prefix: str, own_folder_id: str, role: str) -> str:
    """Derive the folder an asset role is stored under.

    Deterministic: re-deriving during an update yields the same folder the
    original upload used.

    Args:
        parent_prefix: Prefix of the parent collection.
        own_folder_id: The resource's folder token.
        role: Slot name (cover, document, gallery, image).

    Returns:
        '{parent_prefix}/{own_folder_id}/{role}'

    Raises:
        ValueError: If any argument is empty.
    """
    _require(role=role)
    return f"{resource_prefix(parent_prefix, own_folder_id)}/{role.strip('/')}"


def category_parent_prefix(main_folder: str) -> str:
    """Prefix all category subtrees live under."""
    _require(main_folder=main_folder)
    return f"{main_folder.strip('/')}/Categories"


def book_parent_prefix(main_folder: str, category_folder_id: str) -> str:
    """Prefix all book subtrees of one category live under."""
    return f"{resource_prefix(category_parent_prefix(main_folder), category_folder_id)}/Books"


def user_parent_prefix(main_folder: str) -> str:
    """Prefix all user profile subtrees live under."""
    _require(main_folder=main_folder)
    return f"{main_folder.strip('/')}/Users"
