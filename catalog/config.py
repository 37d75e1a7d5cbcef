"""Catalog settings.

Every knob comes from the environment or a local .env file. Blob and upload
options are regrouped into a StorageConfig for the storage package, which
never reads settings itself.

Examples:
    >>> from catalog.config import settings
    >>> settings.BLOB_MAIN_FOLDER
    'catalog'

    >>> settings.get_storage_config()
    StorageConfig(root='./media', main_folder='catalog', ...)

Tests:
    - tests/unit/test_config.py::TestSettings
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from catalog.storage.config import StorageConfig

DEV_JWT_SECRET = "dev-secret-change-me"
SUPPORTED_DATABASES = ("sqlite", "postgresql", "postgres")


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Catalog API settings.

    Attributes:
        DATABASE_URL: Async SQLAlchemy URL, sqlite+aiosqlite or postgresql+asyncpg
        JWT_SECRET_KEY: HS256 signing key for access tokens
        ADMIN_API_KEY: Key required to provision users (empty disables it)
        BLOB_ROOT: Local directory backing the blob store
        BLOB_MAIN_FOLDER: Top-level folder every asset path starts with
        BLOB_PUBLIC_URL: Base URL blob urls are built from
        UPLOAD_DIR: Directory multipart uploads are staged in
        DEFAULT_PAGE_SIZE: Page size when a listing omits `size`
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Store
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./catalog.db",
        description="Async SQLAlchemy URL of the catalog store",
    )

    # Runtime
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment",
    )
    DEBUG: bool = Field(
        default=True,
        description="Expose docs, open CORS and echo SQL",
    )

    # Auth
    AUTH_ENABLED: bool = Field(
        default=True,
        description="Require a bearer token on write endpoints",
    )
    JWT_SECRET_KEY: str = Field(
        default=DEV_JWT_SECRET,
        description="Secret used to sign access tokens",
    )
    JWT_ACCESS_EXPIRE_MINUTES: int = Field(
        default=60 * 24,
        description="Access token lifetime in minutes",
        ge=1,
    )
    ADMIN_API_KEY: str = Field(
        default="",
        description="X-Admin-Key value for user provisioning (empty = disabled)",
    )

    # Blob storage
    BLOB_ROOT: str = Field(
        default="./media",
        description="Local directory backing the blob store",
    )
    BLOB_MAIN_FOLDER: str = Field(
        default="catalog",
        description="Top-level folder for every stored asset",
    )
    BLOB_PUBLIC_URL: str = Field(
        default="http://localhost:8000/media",
        description="Public base URL for stored assets",
    )
    MEDIA_PATH: str = Field(
        default="/media",
        description="Path the local blob store is served under",
    )

    # Uploads
    UPLOAD_DIR: str = Field(
        default="./uploads",
        description="Staging directory for multipart uploads",
    )
    MAX_UPLOAD_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Per-file upload limit",
        ge=1,
    )

    # Listings
    DEFAULT_PAGE_SIZE: int = Field(
        default=10,
        description="Page size when none is requested",
        ge=1,
    )
    MAX_PAGE_SIZE: int = Field(
        default=100,
        description="Largest page size a caller may request",
        ge=1,
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Only SQLite and PostgreSQL are supported."""
        if not v.startswith(SUPPORTED_DATABASES):
            raise ValueError(f"DATABASE_URL must use one of: {', '.join(SUPPORTED_DATABASES)}")
        return v

    @field_validator("BLOB_MAIN_FOLDER")
    @classmethod
    def validate_main_folder(cls, v: str) -> str:
        """Main folder is a single path segment."""
        v = v.strip("/")
        if not v or "/" in v:
            raise ValueError("BLOB_MAIN_FOLDER must be a single non-empty path segment")
        return v

    @model_validator(mode="after")
    def validate_secret(self) -> "Settings":
        """Refuse the development signing key in production."""
        if self.is_production and self.JWT_SECRET_KEY == DEV_JWT_SECRET:
            raise ValueError("JWT_SECRET_KEY must be set in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def is_sqlite(self) -> bool:
        """SQLite needs per-connection pragmas and no pool sizing."""
        return self.DATABASE_URL.startswith("sqlite")

    def get_storage_config(self) -> StorageConfig:
        """Group the blob and upload settings.

        Returns:
            StorageConfig built from the BLOB_* and UPLOAD_* settings.
        """
        return StorageConfig(
            root=self.BLOB_ROOT,
            main_folder=self.BLOB_MAIN_FOLDER,
            public_url=self.BLOB_PUBLIC_URL,
            upload_dir=self.UPLOAD_DIR,
            max_upload_bytes=self.MAX_UPLOAD_BYTES,
        )


@lru_cache
def get_settings() -> Settings:
    """Settings for this process, read once."""
    return Settings()


settings = get_settings()
