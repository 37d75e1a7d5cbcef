"""Response envelopes shared by the v1 routers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from catalog.core.lifecycle import DeletionReport, LifecycleResult


class ResourceResponse(BaseModel):
    """A single record, plus where its blobs live."""

    success: bool = True
    message: str = ""
    data: dict[str, Any]
    folder: str | None = Field(default=None, description="Blob subtree of the resource")
    cleanup: dict[str, Any] | None = Field(
        default=None, description="Blobs that could not be retired, if any"
    )

    @classmethod
    def from_result(cls, result: LifecycleResult, message: str) -> "ResourceResponse":
        return cls(
            message=message,
            data=result.resource.to_dict(),
            folder=result.folder_prefix,
            cleanup=result.cleanup.to_dict() if result.cleanup.has_failures else None,
        )


class ListResponse(BaseModel):
    """One page of records."""

    success: bool = True
    page: int
    size: int
    data: list[dict[str, Any]]


class DeletionResponse(BaseModel):
    """Outcome of a delete; blob failures are reported, not raised."""

    success: bool = True
    message: str
    data: dict[str, Any]

    @classmethod
    def from_report(cls, report: DeletionReport, message: str) -> "DeletionResponse":
        return cls(message=message, data=report.to_dict())
