"""Shared FastAPI dependencies for the v1 routers.

Tests override get_storage_service and get_db_session to run the API
against a fake blob store and an in-memory database.
"""

from __future__ import annotations

from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.config import get_settings
from catalog.core.document_store import DocumentStore
from catalog.core.lifecycle import ResourceLifecycleManager
from catalog.core.query_features import QueryFeatureComposer
from catalog.core.reviews import ReviewService
from catalog.core.users import UserService
from catalog.database import get_db_session
from catalog.staging import UploadStager
from catalog.storage.service import StorageService


@lru_cache
def get_storage_service() -> StorageService:
    return StorageService.from_config(get_settings().get_storage_config())


async def get_document_store(
    session: AsyncSession = Depends(get_db_session),
) -> DocumentStore:
    return DocumentStore(session)


async def get_lifecycle_manager(
    store: DocumentStore = Depends(get_document_store),
    storage: StorageService = Depends(get_storage_service),
) -> ResourceLifecycleManager:
    return ResourceLifecycleManager(store, storage)


async def get_review_service(
    store: DocumentStore = Depends(get_document_store),
) -> ReviewService:
    return ReviewService(store)


async def get_user_service(
    store: DocumentStore = Depends(get_document_store),
) -> UserService:
    return UserService(store)


async def get_upload_stager(
    storage: StorageService = Depends(get_storage_service),
) -> AsyncGenerator[UploadStager, None]:
    """Request-scoped stager; its directory is removed on every exit path."""
    stager = UploadStager(storage.config)
    try:
        yield stager
    finally:
        stager.cleanup()


def listing_composer(model: type, search_fields=()) -> QueryFeatureComposer:
    """Composer with the configured page sizes."""
    settings = get_settings()
    return QueryFeatureComposer(
        model,
        search_fields=search_fields,
        default_size=settings.DEFAULT_PAGE_SIZE,
        max_size=settings.MAX_PAGE_SIZE,
    )
