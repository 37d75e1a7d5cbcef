"""Tests for catalog.storage.deleter."""

import pytest

from catalog.storage.assets import AssetDescriptor, AssetKind
from catalog.storage.deleter import BlobBatchDeleter, CleanupTarget
from tests.helpers import RecordingBlobStore


def _descriptor(remote_id: str) -> AssetDescriptor:
    return AssetDescriptor(remote_id=remote_id, url=f"https://blobs.test/{remote_id}")


@pytest.fixture
def store():
    store = RecordingBlobStore()
    store.blobs = {"a/1": "a", "a/2": "a", "a/3": "a"}
    return store


@pytest.fixture
def deleter(store):
    return BlobBatchDeleter(store)


@pytest.mark.asyncio
class TestBlobBatchDeleter:
    """Tests for BlobBatchDeleter.delete_all()."""

    async def test_every_item_attempted_when_middle_fails(self, deleter, store):
        store.fail_delete_ids = {"a/2"}

        report = await deleter.delete_all([_descriptor("a/1"), _descriptor("a/2"), _descriptor("a/3")])

        assert store.delete_calls == ["a/1", "a/2", "a/3"]
        assert [o.ok for o in report.outcomes] == [True, False, True]
        assert report.has_failures
        assert report.failures[0].path == "a/2"
        assert "refused" in report.failures[0].error
        assert set(store.blobs) == {"a/2"}

    async def test_accepts_kind_pairs(self, deleter, store):
        report = await deleter.delete_all([(_descriptor("a/1"), AssetKind.RAW)])

        assert not report.has_failures
        assert store.delete_calls == ["a/1"]

    async def test_prefix_removes_blobs_then_folder(self, deleter, store):
        report = await deleter.delete_all(folder_prefixes=["a"])

        assert [o.target for o in report.outcomes] == [CleanupTarget.PREFIX, CleanupTarget.FOLDER]
        assert store.prefix_calls == ["a"]
        assert store.folder_calls == ["a"]
        assert store.blobs == {}

    async def test_blobs_reported_before_prefixes(self, deleter, store):
        report = await deleter.delete_all([_descriptor("a/1")], ["a"])

        assert [o.target for o in report.outcomes] == [
            CleanupTarget.BLOB,
            CleanupTarget.PREFIX,
            CleanupTarget.FOLDER,
        ]

    async def test_prefix_failure_is_reported_not_raised(self, deleter, store):
        store.fail_prefixes = {"a"}

        report = await deleter.delete_all(folder_prefixes=["a"])

        assert len(report.failures) == 2
        assert report.to_dict()["attempted"] == 2
        assert {f["target"] for f in report.to_dict()["failed"]} == {"prefix", "folder"}

    async def test_nothing_to_delete(self, deleter, store):
        report = await deleter.delete_all()

        assert report.outcomes == []
        assert not report.has_failures
