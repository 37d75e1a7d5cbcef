"""Best-effort batch deletion of blobs and folders.

Every item is attempted even when earlier ones fail. Failures are collected
into a CleanupReport; nothing here raises. The caller decides whether a
partial failure matters.

Tests:
    - tests/unit/test_storage/test_deleter.py
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from catalog.storage.assets import AssetDescriptor, AssetKind
from catalog.storage.backends.base import BlobStore

logger = logging.getLogger(__name__)


class CleanupTarget(str, Enum):
    """What a cleanup outcome refers to."""

    BLOB = "blob"
    PREFIX = "prefix"
    FOLDER = "folder"


@dataclass
class CleanupOutcome:
    """Result of deleting one item."""

    target: CleanupTarget
    path: str
    ok: bool
    error: str | None = None


@dataclass
class CleanupReport:
    """Per-item outcomes of a best-effort deletion.

    A report with failures is a partial cleanup failure: non-fatal, logged,
    and attached to whatever result the caller returns.
    """

    outcomes: list[CleanupOutcome] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return any(not o.ok for o in self.outcomes)

    @property
    def failures(self) -> list[CleanupOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def extend(self, other: "CleanupReport") -> None:
        self.outcomes.extend(other.outcomes)

    def to_dict(self) -> dict:
        return {
            "attempted": len(self.outcomes),
            "failed": [
                {"target": o.target.value, "path": o.path, "error": o.error}
                for o in self.failures
            ],
        }


def _normalize(
    descriptors: Iterable[AssetDescriptor | tuple[AssetDescriptor, AssetKind]],
) -> list[tuple[AssetDescriptor, AssetKind]]:
    items = []
    for item in descriptors:
        if isinstance(item, tuple):
            items.append(item)
        else:
            items.append((item, AssetKind.IMAGE))
    return items


class BlobBatchDeleter:
    """Deletes known descriptors and folder prefixes, best effort."""

    def __init__(self, store: BlobStore) -> None:
        self.store = store

    async def _delete_blob(self, descriptor: AssetDescriptor, kind: AssetKind) -> CleanupOutcome:
        try:
            await self.store.delete(descriptor.remote_id, kind)
            return CleanupOutcome(CleanupTarget.BLOB, descriptor.remote_id, ok=True)
        except Exception as e:
            logger.warning(f"Blob delete failed for {descriptor.remote_id}: {e}")
            return CleanupOutcome(CleanupTarget.BLOB, descriptor.remote_id, ok=False, error=str(e))

    async def _delete_prefix(self, prefix: str) -> list[CleanupOutcome]:
        outcomes = []
        for target, op in (
            (CleanupTarget.PREFIX, self.store.delete_by_prefix),
            (CleanupTarget.FOLDER, self.store.delete_folder),
        ):
            try:
                await op(prefix)
                outcomes.append(CleanupOutcome(target, prefix, ok=True))
            except Exception as e:
                logger.warning(f"{target.value} delete failed for {prefix}: {e}")
                outcomes.append(CleanupOutcome(target, prefix, ok=False, error=str(e)))
        return outcomes

    async def delete_all(
        self,
        descriptors: Iterable[AssetDescriptor | tuple[AssetDescriptor, AssetKind]] = (),
        folder_prefixes: Iterable[str] = (),
    ) -> CleanupReport:
        """Delete descriptors, then folder prefixes.

        Args:
            descriptors: Descriptors (optionally paired with their kind).
            folder_prefixes: Folders whose contents and folder are removed.

        Returns:
            CleanupReport with one outcome per attempted operation, blobs
            first in input order.
        """
        report = CleanupReport()

        blob_outcomes = await asyncio.gather(
            *(self._delete_blob(d, kind) for d, kind in _normalize(descriptors))
        )
        report.outcomes.extend(blob_outcomes)

        prefix_outcomes = await asyncio.gather(
            *(self._delete_prefix(p) for p in folder_prefixes)
        )
        for outcomes in prefix_outcomes:
            report.outcomes.extend(outcomes)

        if report.has_failures:
            logger.error(
                f"Partial cleanup failure: {len(report.failures)} of "
                f"{len(report.outcomes)} deletions failed"
            )
        return report
