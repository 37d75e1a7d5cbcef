"""Unit tests for configuration module.

Tests for catalog/config.py - Settings and the storage config it groups.

Run with:
    pytest tests/unit/test_config.py -v
    pytest tests/unit/test_config.py -v -m fast
"""

import pytest

from catalog.config import DEV_JWT_SECRET, Environment, Settings, get_settings
from catalog.storage.config import StorageConfig


@pytest.mark.fast
class TestEnvironment:
    """Tests for Environment enum."""

    def test_environment_values(self):
        """Test Environment enum has expected values."""
        assert Environment.DEVELOPMENT.value == "development"
        assert Environment.STAGING.value == "staging"
        assert Environment.PRODUCTION.value == "production"


@pytest.mark.fast
class TestSettings:
    """Tests for Settings class."""

    def test_listing_defaults(self):
        """Test page size defaults."""
        settings = Settings()
        assert settings.DEFAULT_PAGE_SIZE == 10
        assert settings.MAX_PAGE_SIZE == 100

    def test_invalid_database_url(self):
        """Test unsupported database schemes are rejected."""
        with pytest.raises(ValueError, match="DATABASE_URL"):
            Settings(DATABASE_URL="mysql://localhost/catalog")

    def test_sqlite_detection(self):
        """Test is_sqlite property."""
        assert Settings(DATABASE_URL="sqlite+aiosqlite:///./x.db").is_sqlite
        assert not Settings(DATABASE_URL="postgresql+asyncpg://u:p@h/db").is_sqlite

    def test_main_folder_is_trimmed(self):
        """Test BLOB_MAIN_FOLDER loses surrounding slashes."""
        assert Settings(BLOB_MAIN_FOLDER="/library/").BLOB_MAIN_FOLDER == "library"

    @pytest.mark.parametrize("folder", ["", "/", "a/b"])
    def test_main_folder_must_be_one_segment(self, folder):
        """Test BLOB_MAIN_FOLDER validation."""
        with pytest.raises(ValueError, match="BLOB_MAIN_FOLDER"):
            Settings(BLOB_MAIN_FOLDER=folder)

    def test_production_requires_secret(self):
        """Test the development JWT secret is refused in production."""
        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            Settings(ENVIRONMENT=Environment.PRODUCTION, JWT_SECRET_KEY=DEV_JWT_SECRET)

    def test_production_with_secret(self):
        """Test production settings with a real secret."""
        settings = Settings(ENVIRONMENT=Environment.PRODUCTION, JWT_SECRET_KEY="s3cret")
        assert settings.is_production

    def test_page_size_must_be_positive(self):
        """Test DEFAULT_PAGE_SIZE lower bound."""
        with pytest.raises(ValueError):
            Settings(DEFAULT_PAGE_SIZE=0)

    def test_get_storage_config(self):
        """Test blob settings are grouped into a StorageConfig."""
        settings = Settings(
            BLOB_ROOT="/srv/media",
            BLOB_MAIN_FOLDER="library",
            BLOB_PUBLIC_URL="https://cdn.example.com",
            UPLOAD_DIR="/tmp/up",
            MAX_UPLOAD_BYTES=2048,
        )

        config = settings.get_storage_config()

        assert config == StorageConfig(
            root="/srv/media",
            main_folder="library",
            public_url="https://cdn.example.com",
            upload_dir="/tmp/up",
            max_upload_bytes=2048,
        )

    def test_get_settings_is_cached(self):
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()
