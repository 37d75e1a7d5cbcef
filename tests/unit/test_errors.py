"""Unit tests for catalog.core.errors."""

import pytest

from catalog.core.errors import (
    CatalogError,
    ConflictError,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)


@pytest.mark.fast
class TestCatalogErrors:
    """Tests for the error taxonomy."""

    @pytest.mark.parametrize(
        "error_class,kind,status",
        [
            (ValidationError, ErrorKind.VALIDATION, 400),
            (NotFoundError, ErrorKind.NOT_FOUND, 404),
            (ConflictError, ErrorKind.CONFLICT, 409),
            (ForbiddenError, ErrorKind.FORBIDDEN, 403),
            (UpstreamFailure, ErrorKind.UPSTREAM_FAILURE, 502),
        ],
    )
    def test_kind_and_status(self, error_class, kind, status):
        """Test each error maps to its kind and HTTP status."""
        error = error_class("boom")
        assert isinstance(error, CatalogError)
        assert error.kind == kind
        assert error.http_status == status

    def test_to_response(self):
        """Test the REST error envelope."""
        error = ConflictError("Book already exists")
        assert error.to_response() == {
            "error": {"kind": "conflict", "message": "Book already exists"}
        }

    def test_message_is_str(self):
        """Test str() gives the message."""
        assert str(NotFoundError("Category not found")) == "Category not found"
