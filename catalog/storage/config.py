"""Storage configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Configuration for blob storage and upload staging.

    Attributes:
        root: Local directory backing the blob store.
        main_folder: Top-level folder every asset path starts with.
        public_url: Base URL stored assets are reachable under.
        upload_dir: Directory multipart uploads are staged in.
        max_upload_bytes: Per-file upload limit.
    """

    root: str = Field(default="./media", description="Blob storage root directory")
    main_folder: str = Field(default="catalog", description="Top-level asset folder")
    public_url: str = Field(default="http://localhost:8000/media", description="Public asset base URL")
    upload_dir: str = Field(default="./uploads", description="Upload staging directory")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, description="Per-file upload limit")
