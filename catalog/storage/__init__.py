"""Blob storage package for the catalog.

Provides folder-key derivation, the blob store backends, and the batch
uploader/deleter the lifecycle manager drives.

Examples:
    >>> from catalog.storage import StorageService, StorageConfig
    >>> service = StorageService.from_config(StorageConfig())
    >>> result = await service.uploader.upload(batch, slot_paths)
"""

from catalog.storage.assets import AssetDescriptor, AssetKind, StagedFile, UploadBatch
from catalog.storage.config import StorageConfig
from catalog.storage.deleter import BlobBatchDeleter, CleanupOutcome, CleanupReport
from catalog.storage.naming import derive, generate_folder_id, resource_prefix
from catalog.storage.service import StorageService
from catalog.storage.uploader import BlobBatchUploader, UploadResult

__all__ = [
    "AssetDescriptor",
    "AssetKind",
    "BlobBatchDeleter",
    "BlobBatchUploader",
    "CleanupOutcome",
    "CleanupReport",
    "StagedFile",
    "StorageConfig",
    "StorageService",
    "UploadBatch",
    "UploadResult",
    "derive",
    "generate_folder_id",
    "resource_prefix",
]
