"""Shared test doubles and helpers."""
from io import BytesIO

from PIL import Image

from catalog.auth.context import AuthContext
from catalog.models_auth import User
from catalog.storage.assets import AssetDescriptor, AssetKind
from catalog.storage.backends.base import BlobStore, BlobStoreError


class RecordingBlobStore(BlobStore):
    """In-memory blob store that records calls.

    Attributes:
        blobs: remote_id -> dest_prefix for every stored blob.
        upload_calls / delete_calls / prefix_calls / folder_calls: call log.
        fail_upload_roles: Uploads whose folder ends with one of these
            segments raise.
        fail_delete_ids: Remote ids whose delete raises.
        fail_prefixes: Prefixes whose delete_by_prefix/delete_folder raise.
    """

    def __init__(self):
        self.blobs: dict[str, str] = {}
        self.upload_calls: list[tuple[str, str]] = []
        self.delete_calls: list[str] = []
        self.prefix_calls: list[str] = []
        self.folder_calls: list[str] = []
        self.fail_upload_roles: set[str] = set()
        self.fail_delete_ids: set[str] = set()
        self.fail_prefixes: set[str] = set()
        self._counter = 0

    @property
    def mutation_count(self) -> int:
        return (
            len(self.upload_calls)
            + len(self.delete_calls)
            + len(self.prefix_calls)
            + len(self.folder_calls)
        )

    async def upload(self, local_path: str, dest_prefix: str) -> AssetDescriptor:
        self.upload_calls.append((local_path, dest_prefix))
        if dest_prefix.rsplit("/", 1)[-1] in self.fail_upload_roles:
            raise BlobStoreError(f"upload to {dest_prefix} refused")
        self._counter += 1
        remote_id = f"{dest_prefix}/blob{self._counter}"
        self.blobs[remote_id] = dest_prefix
        return AssetDescriptor(remote_id=remote_id, url=f"https://blobs.test/{remote_id}")

    async def delete(self, remote_id: str, kind: AssetKind = AssetKind.IMAGE) -> None:
        self.delete_calls.append(remote_id)
        if remote_id in self.fail_delete_ids:
            raise BlobStoreError(f"delete of {remote_id} refused")
        self.blobs.pop(remote_id, None)

    async def delete_by_prefix(self, prefix: str) -> None:
        self.prefix_calls.append(prefix)
        if prefix in self.fail_prefixes:
            raise BlobStoreError(f"delete by prefix {prefix} refused")
        for remote_id in [r for r in self.blobs if r.startswith(prefix + "/")]:
            del self.blobs[remote_id]

    async def delete_folder(self, prefix: str) -> None:
        self.folder_calls.append(prefix)
        if prefix in self.fail_prefixes:
            raise BlobStoreError(f"delete folder {prefix} refused")


def auth_for(user: User) -> AuthContext:
    return AuthContext(caller_id=user.id, role=user.role)


def png_bytes(color: str = "red") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


def bearer(user: User) -> dict[str, str]:
    """Authorization header carrying a fresh access token for `user`."""
    from catalog.auth.jwt_handler import create_access_token

    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
