"""Book API endpoints.

Endpoints:
    POST   /api/v1/books?category_id=&author_id=  - Create (multipart)
    PUT    /api/v1/books/{id}                     - Sparse update
    DELETE /api/v1/books/{id}                     - Delete with its blobs
    GET    /api/v1/books                          - List (page, size, sort, search, filters)
    GET    /api/v1/books/{id}                     - Get one

Listing accepts bracketed filters, e.g.:

    GET /api/v1/books?pages[gte]=100&language[in]=en,fr&sort=pages desc

Tests:
    - tests/integration/test_api_books.py
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

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
from catalog.core.resources import BOOK
from catalog.models import Book
from catalog.staging import BOOK_SLOTS, UploadStager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.post("", response_model=ResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    category_id: str = Query(...),
    author_id: str = Query(...),
    title: str = Form(...),
    description: str = Form(...),
    language: str = Form(...),
    release_date: str = Form(...),
    pages: int = Form(..., ge=1),
    cover: UploadFile | None = File(default=None),
    document: UploadFile | None = File(default=None),
    gallery: list[UploadFile] | None = File(default=None),
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
    stager: UploadStager = Depends(get_upload_stager),
) -> ResourceResponse:
    """Create a book. Requires author, admin or super_admin.

    `cover` and `document` are required; `gallery` takes up to 10 images.
    """
    batch = await stager.stage_many(
        BOOK_SLOTS, {"cover": cover, "document": document, "gallery": gallery}
    )
    fields = {
        "title": title,
        "description": description,
        "language": language,
        "release_date": release_date,
        "pages": pages,
    }
    result = await manager.create_resource(
        BOOK, fields, {"category_id": category_id, "author_id": author_id}, auth, batch
    )
    return ResourceResponse.from_result(result, "Book created successfully")


@router.put("/{book_id}", response_model=ResourceResponse)
async def update_book(
    book_id: str,
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    language: str | None = Form(default=None),
    release_date: str | None = Form(default=None),
    pages: int | None = Form(default=None, ge=1),
    cover: UploadFile | None = File(default=None),
    document: UploadFile | None = File(default=None),
    gallery: list[UploadFile] | None = File(default=None),
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
    stager: UploadStager = Depends(get_upload_stager),
) -> ResourceResponse:
    """Sparse update. A staged gallery replaces the whole gallery."""
    batch = await stager.stage_many(
        BOOK_SLOTS, {"cover": cover, "document": document, "gallery": gallery}
    )
    patch = {
        "title": title,
        "description": description,
        "language": language,
        "release_date": release_date,
        "pages": pages,
    }
    result = await manager.update_resource(BOOK, book_id, patch, auth, batch)
    return ResourceResponse.from_result(result, "Book updated successfully")


@router.delete("/{book_id}", response_model=DeletionResponse)
async def delete_book(
    book_id: str,
    auth: AuthContext = Depends(get_auth_context),
    manager: ResourceLifecycleManager = Depends(get_lifecycle_manager),
) -> DeletionResponse:
    report = await manager.delete_resource(BOOK, book_id, auth)
    return DeletionResponse.from_report(report, "Book deleted successfully")


@router.get("", response_model=ListResponse)
async def list_books(
    request: Request,
    store: DocumentStore = Depends(get_document_store),
) -> ListResponse:
    """List books with pagination, sort, search and bracketed filters."""
    composer = listing_composer(Book, BOOK_SEARCH_FIELDS)
    plan = composer.plan(request.query_params.multi_items())
    books = await store.find_many(composer.apply(plan))
    return ListResponse(page=plan.page, size=plan.limit, data=[b.to_dict() for b in books])


@router.get("/{book_id}", response_model=ResourceResponse)
async def get_book(
    book_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> ResourceResponse:
    book = await store.find_by_id(Book, book_id)
    if book is None:
        raise NotFoundError("Book not found")
    return ResourceResponse(data=book.to_dict())
