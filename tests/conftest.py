"""
Pytest configuration and fixtures for the catalog tests.

Every test runs against an in-memory SQLite database (aiosqlite, StaticPool)
and a RecordingBlobStore that keeps blobs in memory, records every call and
fails on demand.
"""
import os
import tempfile
from pathlib import Path

# Settings are read at import time; point them at throwaway locations first.
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="catalog-tests-"))
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BLOB_ROOT", str(_TMP_ROOT / "media"))
os.environ.setdefault("UPLOAD_DIR", str(_TMP_ROOT / "uploads"))
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("AUTH_ENABLED", "true")
os.environ.setdefault("DEBUG", "false")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from catalog.core.document_store import DocumentStore
from catalog.core.lifecycle import ResourceLifecycleManager
from catalog.core.resources import BOOK, CATEGORY
from catalog.models import Base
from catalog.models_auth import SystemRole, User
from catalog.storage.assets import AssetKind, StagedFile, UploadBatch
from catalog.storage.config import StorageConfig
from catalog.storage.service import StorageService
from tests.helpers import RecordingBlobStore, auth_for, png_bytes


# ============================================
# Database
# ============================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session):
    return DocumentStore(session)


# ============================================
# Storage and lifecycle
# ============================================

@pytest.fixture
def blob_store():
    return RecordingBlobStore()


@pytest.fixture
def storage_config(tmp_path):
    return StorageConfig(
        root=str(tmp_path / "media"),
        main_folder="catalog",
        public_url="https://blobs.test",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def storage(storage_config, blob_store):
    return StorageService(config=storage_config, store=blob_store)


@pytest.fixture
def manager(store, storage):
    return ResourceLifecycleManager(store, storage)


# ============================================
# Users and callers
# ============================================

@pytest.fixture
async def users(store):
    """One persisted user per role, plus a second author."""
    created = {}
    for key, role in (
        ("super_admin", SystemRole.SUPER_ADMIN),
        ("admin", SystemRole.ADMIN),
        ("author", SystemRole.AUTHOR),
        ("other_author", SystemRole.AUTHOR),
        ("reader", SystemRole.USER),
    ):
        created[key] = await store.create(
            User(username=key, email=f"{key}@example.com", role=role)
        )
    return created


# ============================================
# Staged files
# ============================================

@pytest.fixture
def stage(tmp_path):
    """Factory writing a staged file and returning its StagedFile."""
    staged_dir = tmp_path / "staged"
    staged_dir.mkdir()
    counter = {"n": 0}

    def _stage(slot: str, suffix: str = ".png", kind: AssetKind = AssetKind.IMAGE) -> StagedFile:
        counter["n"] += 1
        path = staged_dir / f"{slot}-{counter['n']}{suffix}"
        path.write_bytes(png_bytes() if suffix == ".png" else b"%PDF-1.4 test")
        return StagedFile(slot=slot, local_path=str(path), kind=kind)

    return _stage


@pytest.fixture
def book_batch(stage):
    """Factory for a complete book batch (cover, document, optional gallery)."""

    def _batch(gallery: int = 0) -> UploadBatch:
        batch = UploadBatch()
        batch.add(stage("cover"))
        batch.add(stage("document", ".pdf", AssetKind.RAW))
        for _ in range(gallery):
            batch.add(stage("gallery"))
        return batch

    return _batch


@pytest.fixture
def book_fields():
    return {
        "title": "The Dispossessed",
        "description": "An ambiguous utopia",
        "language": "en",
        "release_date": "1974-05-01",
        "pages": 387,
    }


# ============================================
# Persisted resources
# ============================================

@pytest.fixture
async def category(manager, users, stage):
    """A category created by the admin."""
    result = await manager.create_resource(
        CATEGORY,
        {"name": "Science Fiction"},
        None,
        auth_for(users["admin"]),
        UploadBatch([stage("image")]),
    )
    return result.resource


@pytest.fixture
async def book(manager, users, category, book_batch, book_fields):
    """A book with a two-image gallery, created by the author."""
    result = await manager.create_resource(
        BOOK,
        book_fields,
        {"category_id": category.id, "author_id": users["author"].id},
        auth_for(users["author"]),
        book_batch(gallery=2),
    )
    return result.resource
