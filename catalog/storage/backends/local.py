"""Local filesystem blob store using pathlib."""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path

from catalog.storage.assets import AssetDescriptor, AssetKind
from catalog.storage.backends.base import BlobStore, BlobStoreError


class LocalBlobStore(BlobStore):
    """Pathlib-based blob store rooted at a local directory.

    Remote ids are paths relative to the root; urls join them onto the
    public base url the root is served under.
    """

    def __init__(self, root: str, public_url: str) -> None:
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")

    def _resolve(self, relative: str) -> Path:
        path = (self.root / relative.strip("/")).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise BlobStoreError(f"Path escapes blob root: {relative}")
        return path

    async def upload(self, local_path: str, dest_prefix: str) -> AssetDescriptor:
        """Copy a local file into the store under a random name."""
        source = Path(local_path)
        if not source.is_file():
            raise BlobStoreError(f"Staged file missing: {local_path}")

        remote_id = f"{dest_prefix.strip('/')}/{uuid.uuid4().hex}{source.suffix.lower()}"
        target = self._resolve(remote_id)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            raise BlobStoreError(f"Upload to {dest_prefix} failed: {e}") from e

        return AssetDescriptor(remote_id=remote_id, url=f"{self.public_url}/{remote_id}")

    async def delete(self, remote_id: str, kind: AssetKind = AssetKind.IMAGE) -> None:
        """Delete a single stored file."""
        target = self._resolve(remote_id)
        if not target.is_file():
            raise BlobStoreError(f"Blob not found: {remote_id}")
        try:
            target.unlink()
        except OSError as e:
            raise BlobStoreError(f"Delete of {remote_id} failed: {e}") from e

    async def delete_by_prefix(self, prefix: str) -> None:
        """Delete every file below a folder, leaving the folders."""
        folder = self._resolve(prefix)
        if not folder.exists():
            return
        try:
            for path in folder.rglob("*"):
                if path.is_file():
                    path.unlink()
        except OSError as e:
            raise BlobStoreError(f"Delete by prefix {prefix} failed: {e}") from e

    async def delete_folder(self, prefix: str) -> None:
        """Remove a folder tree."""
        folder = self._resolve(prefix)
        if not folder.exists():
            return
        try:
            shutil.rmtree(folder)
        except OSError as e:
            raise BlobStoreError(f"Delete folder {prefix} failed: {e}") from e
