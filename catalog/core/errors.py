"""Error taxonomy for catalog operations.

Every error raised by the lifecycle manager, the document store adapter and
the upload stager is a CatalogError with a stable kind. The API layer maps
the kind to an HTTP status; store-specific exceptions never reach callers.

Examples:
    >>> raise NotFoundError("Category not found")
    >>> err = ConflictError("Book already exists")
    >>> err.to_response()
    {'error': {'kind': 'conflict', 'message': 'Book already exists'}}

Tests:
    - tests/unit/test_errors.py
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Stable error kinds exposed to callers."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    UPSTREAM_FAILURE = "upstream_failure"


class CatalogError(Exception):
    """Base exception for all catalog errors.

    Attributes:
        kind: Error kind.
        message: Human-readable message, safe to return to callers.
        http_status: Status code the API layer responds with.
    """

    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE
    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict[str, Any]:
        """Convert to the REST error envelope."""
        return {"error": {"kind": self.kind.value, "message": self.message}}


class ValidationError(CatalogError):
    """Missing required asset or malformed field."""

    kind = ErrorKind.VALIDATION
    http_status = 400


class NotFoundError(CatalogError):
    """Parent or target resource absent."""

    kind = ErrorKind.NOT_FOUND
    http_status = 404


class ConflictError(CatalogError):
    """Duplicate natural key or unique-constraint violation."""

    kind = ErrorKind.CONFLICT
    http_status = 409


class ForbiddenError(CatalogError):
    """Caller is not allowed to perform the operation."""

    kind = ErrorKind.FORBIDDEN
    http_status = 403


class UpstreamFailure(CatalogError):
    """A blob store or document store call failed."""

    kind = ErrorKind.UPSTREAM_FAILURE
    http_status = 502
