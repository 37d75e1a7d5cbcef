"""Blob store backends."""

from catalog.storage.backends.base import BlobStore, BlobStoreError
from catalog.storage.backends.local import LocalBlobStore

__all__ = ["BlobStore", "BlobStoreError", "LocalBlobStore"]
