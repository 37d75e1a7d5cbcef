"""FastAPI application for the catalog API.

create_app() wires the v1 routers, the error envelope, the media mount for
the local blob store and the database lifespan. The module-level `app` is
what uvicorn serves.

Run with:
    uvicorn catalog.main:app --reload

Examples:
    >>> curl http://localhost:8000/health
    {"status": "healthy", "version": "1.0.0", "database": true, "blob_store": true}

Tests:
    - tests/unit/test_main.py
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from catalog import __version__
from catalog.api.v1 import router as v1_router
from catalog.config import Settings, get_settings
from catalog.core.errors import CatalogError
from catalog.database import check_db_connection, close_db, init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

HTTP_ERROR_KINDS = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: bool
    blob_store: bool


def _error(status_code: int, kind: str, message: Any, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"kind": kind, "message": message}},
        headers=headers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure tables on startup, release connections on shutdown."""
    logger.info(f"Catalog API v{__version__} starting")
    try:
        await init_db()
    except Exception as e:
        logger.error(f"Could not ensure catalog tables: {e}")

    yield

    await close_db()
    logger.info("Catalog API stopped")


def _register_error_handlers(app: FastAPI, debug: bool) -> None:
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        if exc.http_status >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.kind.value}: {exc.message}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        kind = HTTP_ERROR_KINDS.get(exc.status_code, "http_error")
        return _error(exc.status_code, kind, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        message = str(exc) if debug else "Internal server error"
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal", message)


def _register_service_routes(app: FastAPI, settings: Settings) -> None:
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Database reachability and blob root presence."""
        database = await check_db_connection()
        blob_store = Path(settings.BLOB_ROOT).is_dir()
        return HealthResponse(
            status="healthy" if database and blob_store else "degraded",
            version=__version__,
            database=database,
            blob_store=blob_store,
        )

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        return {
            "name": "Catalog API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/api/v1/status", tags=["API"])
    async def api_status() -> dict[str, Any]:
        return {
            "api_version": "v1",
            "app_version": __version__,
            "environment": settings.ENVIRONMENT.value,
            "storage": {
                "main_folder": settings.BLOB_MAIN_FOLDER,
                "media_path": settings.MEDIA_PATH,
            },
        }


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the catalog application.

    Args:
        settings: Defaults to the cached process settings.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Catalog API",
        description="Books, categories and reviews with their stored assets",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(v1_router)
    _register_error_handlers(app, settings.DEBUG)
    _register_service_routes(app, settings)

    # Local blob URLs resolve here.
    Path(settings.BLOB_ROOT).mkdir(parents=True, exist_ok=True)
    app.mount(settings.MEDIA_PATH, StaticFiles(directory=settings.BLOB_ROOT), name="media")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("catalog.main:app", host="0.0.0.0", port=8000, reload=get_settings().DEBUG)
