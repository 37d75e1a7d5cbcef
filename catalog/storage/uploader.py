"""Batch upload of staged files to derived blob paths.

Slots are uploaded concurrently and joined; a failed upload never cancels
its siblings, so every descriptor that did get stored is known to the
caller for compensation. Staged files are removed from local disk as soon
as their own upload attempt finishes, success or failure.

Examples:
    >>> uploader = BlobBatchUploader(store)
    >>> result = await uploader.upload(batch, {"cover": "catalog/Categories/a3f2/Books/9c1e/cover"})
    >>> result.ok
    True
    >>> result.first("cover").url
    'http://localhost:8000/media/catalog/Categories/a3f2/Books/9c1e/cover/....png'

Tests:
    - tests/unit/test_storage/test_uploader.py
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from catalog.storage.assets import AssetDescriptor, AssetKind, StagedFile, UploadBatch
from catalog.storage.backends.base import BlobStore

logger = logging.getLogger(__name__)


@dataclass
class UploadFailure:
    """A staged file that could not be stored."""

    slot: str
    local_path: str
    error: str


@dataclass
class UploadResult:
    """Outcome of one batch upload.

    Attributes:
        descriptors: Stored descriptors per slot, in batch order.
        kinds: Blob kind per stored remote id.
        failures: Files that failed to upload.
    """

    descriptors: dict[str, list[AssetDescriptor]] = field(default_factory=dict)
    kinds: dict[str, AssetKind] = field(default_factory=dict)
    failures: list[UploadFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def first(self, slot: str) -> AssetDescriptor | None:
        items = self.descriptors.get(slot)
        return items[0] if items else None

    def all(self, slot: str) -> list[AssetDescriptor]:
        return list(self.descriptors.get(slot, []))

    def stored(self) -> list[tuple[AssetDescriptor, AssetKind]]:
        """Every descriptor that reached the store, with its kind."""
        return [
            (descriptor, self.kinds.get(descriptor.remote_id, AssetKind.IMAGE))
            for items in self.descriptors.values()
            for descriptor in items
        ]

    def failure_summary(self) -> str:
        return "; ".join(f"{f.slot}: {f.error}" for f in self.failures)


def _discard_local(path: str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove staged file {path}: {e}")


class BlobBatchUploader:
    """Uploads an UploadBatch to per-slot folders."""

    def __init__(self, store: BlobStore) -> None:
        self.store = store

    async def _upload_one(
        self,
        staged: StagedFile,
        dest_prefix: str | None,
    ) -> AssetDescriptor | UploadFailure:
        try:
            if not dest_prefix:
                return UploadFailure(staged.slot, staged.local_path, "no destination derived for slot")
            return await self.store.upload(staged.local_path, dest_prefix)
        except Exception as e:
            logger.warning(f"Upload of {staged.slot} ({staged.local_path}) failed: {e}")
            return UploadFailure(staged.slot, staged.local_path, str(e))
        finally:
            _discard_local(staged.local_path)

    async def upload(self, batch: UploadBatch, slot_paths: dict[str, str]) -> UploadResult:
        """Upload every staged file of a batch.

        Args:
            batch: Staged files.
            slot_paths: Destination folder per slot name.

        Returns:
            UploadResult with descriptors and failures. Never raises for
            individual upload errors.
        """
        result = UploadResult()
        if not batch.files:
            return result

        outcomes = await asyncio.gather(
            *(self._upload_one(staged, slot_paths.get(staged.slot)) for staged in batch.files)
        )

        for staged, outcome in zip(batch.files, outcomes):
            if isinstance(outcome, UploadFailure):
                result.failures.append(outcome)
            else:
                result.descriptors.setdefault(staged.slot, []).append(outcome)
                result.kinds[outcome.remote_id] = staged.kind

        stored = sum(len(v) for v in result.descriptors.values())
        logger.info(f"Batch upload: {stored} stored, {len(result.failures)} failed")
        return result
