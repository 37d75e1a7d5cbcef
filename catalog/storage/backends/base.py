"""Abstract base class for blob store backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from catalog.storage.assets import AssetDescriptor, AssetKind


class BlobStoreError(Exception):
    """Raised by backends when a blob operation fails."""


class BlobStore(ABC):
    """Abstract hierarchical object store.

    Implementations address blobs by slash-separated paths and raise
    BlobStoreError for any failure.
    """

    @abstractmethod
    async def upload(self, local_path: str, dest_prefix: str) -> AssetDescriptor:
        """Store a local file under a folder prefix.

        Args:
            local_path: File to upload.
            dest_prefix: Folder the blob is placed in.

        Returns:
            Descriptor of the stored blob.
        """

    @abstractmethod
    async def delete(self, remote_id: str, kind: AssetKind = AssetKind.IMAGE) -> None:
        """Delete a single blob.

        Args:
            remote_id: Remote id returned by upload().
            kind: Blob kind.
        """

    @abstractmethod
    async def delete_by_prefix(self, prefix: str) -> None:
        """Delete every blob whose path starts with prefix.

        Args:
            prefix: Folder prefix.
        """

    @abstractmethod
    async def delete_folder(self, prefix: str) -> None:
        """Delete an (emptied) folder.

        Args:
            prefix: Folder path.
        """
