"""API v1 module.

Contains all v1 API routes.
"""

from fastapi import APIRouter

from catalog.api.v1.books import router as books_router
from catalog.api.v1.categories import router as categories_router
from catalog.api.v1.reviews import router as reviews_router
from catalog.api.v1.users import router as users_router

router = APIRouter(prefix="/api/v1")
router.include_router(categories_router)
router.include_router(books_router)
router.include_router(reviews_router)
router.include_router(users_router)

__all__ = ["router"]
