"""Asset descriptors and request-scoped upload batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel


class AssetKind(str, Enum):
    """Kind of stored blob, needed by stores that delete per kind."""

    IMAGE = "image"
    RAW = "raw"


class AssetDescriptor(BaseModel):
    """Opaque handle into the blob store plus a dereferenceable URL."""

    remote_id: str
    url: str

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> "AssetDescriptor | None":
        """Build from a stored JSON column value."""
        if not data:
            return None
        return cls.model_validate(data)


@dataclass(frozen=True)
class StagedFile:
    """A file the upload stager placed on local disk.

    Attributes:
        slot: Slot the file is destined for (cover, document, gallery, image).
        local_path: Where the staged bytes live.
        kind: Blob kind for the slot.
    """

    slot: str
    local_path: str
    kind: AssetKind = AssetKind.IMAGE


@dataclass
class UploadBatch:
    """Pending uploads for one lifecycle operation. Never persisted."""

    files: list[StagedFile] = field(default_factory=list)

    def add(self, staged: StagedFile) -> None:
        self.files.append(staged)

    def for_slot(self, slot: str) -> list[StagedFile]:
        return [f for f in self.files if f.slot == slot]

    def has_slot(self, slot: str) -> bool:
        return any(f.slot == slot for f in self.files)

    @property
    def slots(self) -> list[str]:
        seen: list[str] = []
        for f in self.files:
            if f.slot not in seen:
                seen.append(f.slot)
        return seen

    def __len__(self) -> int:
        return len(self.files)
