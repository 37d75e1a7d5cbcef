"""Unit tests for the FastAPI application.

Tests for catalog/main.py - health, root, status and error rendering.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from catalog import __version__
from catalog.database import get_db_session
from catalog.main import app


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.fast
class TestApp:
    """Tests for application setup."""

    def test_app_is_fastapi(self):
        assert isinstance(app, FastAPI)
        assert app.version == __version__

    def test_v1_routes_registered(self):
        paths = app.openapi()["paths"]
        assert "/api/v1/books" in paths
        assert "/api/v1/categories/{category_id}" in paths
        assert "/api/v1/reviews" in paths
        assert "/api/v1/users" in paths
        assert "/api/v1/users/{user_id}/image" in paths
        assert "/api/v1/users/{user_id}/soft-delete" in paths


@pytest.mark.asyncio
class TestEndpoints:
    """Tests for the non-resource endpoints."""

    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Catalog API"

    async def test_health(self, client):
        response = await client.get("/health")
        body = response.json()
        assert response.status_code == 200
        assert body["database"] is True
        assert body["blob_store"] is True
        assert body["status"] == "healthy"

    async def test_status(self, client):
        response = await client.get("/api/v1/status")
        body = response.json()
        assert body["api_version"] == "v1"
        assert body["storage"]["main_folder"] == "catalog"

    async def test_missing_book_uses_error_envelope(self, client, session_factory):
        async def override_session():
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_db_session] = override_session
        try:
            response = await client.get("/api/v1/books/missing")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 404
        assert response.json() == {"error": {"kind": "not_found", "message": "Book not found"}}
