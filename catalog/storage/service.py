"""Storage service: the blob store with its batch uploader and deleter.

Examples:
    >>> from catalog.storage.service import StorageService
    >>> service = StorageService.from_config(config)
    >>> result = await service.uploader.upload(batch, slot_paths)
"""

from __future__ import annotations

from catalog.storage.backends.base import BlobStore
from catalog.storage.backends.local import LocalBlobStore
from catalog.storage.config import StorageConfig
from catalog.storage.deleter import BlobBatchDeleter
from catalog.storage.naming import (
    book_parent_prefix,
    category_parent_prefix,
    user_parent_prefix,
)
from catalog.storage.uploader import BlobBatchUploader


class StorageService:
    """Blob storage entry point for the lifecycle manager.

    Attributes:
        config: Storage configuration.
        store: Blob store backend.
        uploader: Batch uploader bound to the store.
        deleter: Best-effort batch deleter bound to the store.
    """

    def __init__(self, config: StorageConfig, store: BlobStore | None = None) -> None:
        self.config = config
        self.store = store or LocalBlobStore(config.root, config.public_url)
        self.uploader = BlobBatchUploader(self.store)
        self.deleter = BlobBatchDeleter(self.store)

    @classmethod
    def from_config(cls, config: StorageConfig) -> "StorageService":
        """Create a StorageService backed by the local blob store."""
        return cls(config=config, store=LocalBlobStore(config.root, config.public_url))

    def category_parent_prefix(self) -> str:
        return category_parent_prefix(self.config.main_folder)

    def book_parent_prefix(self, category_folder_id: str) -> str:
        return book_parent_prefix(self.config.main_folder, category_folder_id)

    def user_parent_prefix(self) -> str:
        return user_parent_prefix(self.config.main_folder)
