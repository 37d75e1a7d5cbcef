"""Category API endpoints.

Endpoints:
    POST   /api/v1/categories              - Create (multipart: name, image)
    PUT    /api/v1/categories/{id}         - Update name and/or image
    DELETE /api/v1/categories/{id}         - Delete with its books and blobs
    GET    /api/v1/categories              - List, each with its books
    GET    /api/v1/categories/{id}         - Get with its books
    GET    /api/v1/categories/{id}/books   - List a category's books

Tests:
    - tests/integration/test_api_categories.py
"""

from __future__ import annotations

import logging
from collections import defaultdict

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy import select

from catalog.api.deps import (
    get_document_store,
    get_lifecycle_manager,
    get_upload_stager,
    listing_composer,
)
from catalog.api.v1.schemas import DeletionResponse, ListResponse, ResourceResponse
from catalog.auth import AuthContext, get_auth_context
from catalog.core.document_store import DocumentStore
from catalog.core.errors import NotFoundError
from catalog.core.lifecycle import ResourceLifecycleManager
from catalog.core.query_features import BOOK_SEARCH_FIELDS
from catalog.core.resources import CATEGORY
from catalog.models import Book, Category
from catalog.staging import CATEGORY_SLOTS, UploadStager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("", response_model=ResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    name: str = Form(...),
    image: UploadFile | None = File(default=None),
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
    stager: UploadStager = Depends(get_upload_stager),
) -> ResourceResponse:
    """Create a category. Requires admin or super_admin."""
    batch = await stager.stage_many(CATEGORY_SLOTS, {"image": image})
    result = await manager.create_resource(CATEGORY, {"name": name}, None, auth, batch)
    return ResourceResponse.from_result(result, "Category created successfully")


@router.put("/{category_id}", response_model=ResourceResponse)
async def update_category(
    category_id: str,
    name: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
    stager: UploadStager = Depends(get_upload_stager),
) -> ResourceResponse:
    """Update a category. Only the creator or a super admin may."""
    batch = await stager.stage_many(CATEGORY_SLOTS, {"image": image})
    result = await manager.update_resource(CATEGORY, category_id, {"name": name}, auth, batch)
    return ResourceResponse.from_result(result, "Category updated successfully")


@router.delete("/{category_id}", response_model=DeletionResponse)
async def delete_category(
    category_id: str,
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
) -> DeletionResponse:
    report = await manager.delete_resource(CATEGORY, category_id, auth)
    return DeletionResponse.from_report(report, "Category deleted successfully")


@router.get("", response_model=ListResponse)
async def list_categories(
    request: Request,
    store: DocumentStore = Depends(get_document_store),
) -> ListResponse:
    """Paginated, sorted list of categories, each with its books."""
    composer = listing_composer(Category)
    plan = composer.plan(request.query_params.multi_items())
    categories = await store.find_many(composer.apply(plan))

    books_by_category = defaultdict(list)
    if categories:
        books = await store.find_many(
            select(Book)
            .where(Book.category_id.in_([c.id for c in categories]))
            .order_by(Book.created_at.desc())
        )
        for book in books:
            books_by_category[book.category_id].append(book.to_dict())

    data = [{**c.to_dict(), "books": books_by_category[c.id]} for c in categories]
    return ListResponse(page=plan.page, size=plan.limit, data=data)


@router.get("/{category_id}", response_model=ResourceResponse)
async def get_category(
    category_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> ResourceResponse:
    """Get a category together with its books."""
    category = await store.find_by_id(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    books = await store.find_many(
        select(Book).where(Book.category_id == category_id).order_by(Book.created_at.desc())
    )
    data = category.to_dict()
    data["books"] = [b.to_dict() for b in books]
    return ResourceResponse(data=data)


@router.get("/{category_id}/books", response_model=ListResponse)
async def list_category_books(
    category_id: str,
    request: Request,
    store: DocumentStore = Depends(get_document_store),
) -> ListResponse:
    if await store.find_by_id(Category, category_id) is None:
        raise NotFoundError("Category not found")
    composer = listing_composer(Book, BOOK_SEARCH_FIELDS)
    plan = composer.plan(request.query_params.multi_items())
    books = await store.find_many(
        composer.apply(plan, select(Book).where(Book.category_id == category_id))
    )
    return ListResponse(page=plan.page, size=plan.limit, data=[b.to_dict() for b in books])
