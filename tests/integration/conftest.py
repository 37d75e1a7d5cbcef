"""Fixtures for API tests.

The app runs in-process over httpx's ASGITransport. The database session
and the storage service are overridden so requests hit the in-memory test
database and the RecordingBlobStore of the unit fixtures.
"""
import pytest
from httpx import ASGITransport, AsyncClient

from catalog.api.deps import get_storage_service
from catalog.database import get_db_session
from catalog.main import app
from tests.helpers import png_bytes


@pytest.fixture
async def client(session_factory, storage):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_storage_service] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def book_files():
    """Multipart files for a complete book."""

    def _files(gallery: int = 0, cover: bytes | None = None):
        files = [
            ("cover", ("cover.png", cover if cover is not None else png_bytes(), "image/png")),
            ("document", ("book.pdf", b"%PDF-1.4 test", "application/pdf")),
        ]
        for i in range(gallery):
            files.append(("gallery", (f"g{i}.png", png_bytes("blue"), "image/png")))
        return files

    return _files
