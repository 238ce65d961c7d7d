"""
Request and result models for the generated operation surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from .base import RecordState
from .field import FieldDescriptor
from .record import Record, RecordRead


@dataclass(frozen=True)
class Actor:
    """Identity of the caller as established by the external auth layer."""

    user_id: str | None = None
    tenant_id: str | None = None


ANONYMOUS = Actor()


class ListParams(BaseModel):
    """Parameters accepted by the list operation."""

    page: int = 1
    limit: int | None = None
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    search: str = ""
    deleted: bool = False
    filters: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_query(cls, query: dict[str, Any]) -> ListParams:
        """Split reserved keys from per-field filters in a flat query mapping."""
        reserved = {"page", "limit", "sort_by", "sort_order", "search", "deleted"}
        filters = {k: v for k, v in query.items() if k not in reserved}
        sort_order = str(query.get("sort_order", "desc")).lower()
        return cls(
            page=_to_int(query.get("page"), 1),
            limit=_to_int(query.get("limit"), None),
            sort_by=str(query.get("sort_by") or "created_at"),
            sort_order="asc" if sort_order == "asc" else "desc",
            search=str(query.get("search") or ""),
            deleted=str(query.get("deleted", "")).lower() == "true",
            filters=filters,
        )


def _to_int(value: Any, fallback: int | None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


class PaginationInfo(BaseModel):
    """Pagination metadata returned with a page of records."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class FilterEcho(BaseModel):
    """Echo of the list parameters, for redisplaying filter controls."""

    search: str = ""
    applied: list[str] = Field(default_factory=list)
    searchable: list[str] = Field(default_factory=list)
    filterable: list[str] = Field(default_factory=list)
    sortable: list[str] = Field(default_factory=list)


class RecordPage(BaseModel):
    """One page of records with the metadata needed to render it."""

    model_name: str
    title: str
    records: list[RecordRead]
    field_config: dict[str, FieldDescriptor]
    pagination: PaginationInfo
    filters: FilterEcho
    show_deleted: bool = False
    soft_delete: bool = False
    deleted_count: int | None = None


class FormView(BaseModel):
    """Descriptors and values for a create or edit form."""

    model_name: str
    title: str
    field_config: dict[str, FieldDescriptor]
    record: dict[str, Any]
    record_id: UUID | None = None


@dataclass
class OperationResult:
    """Outcome of an insert or update.

    ``warnings`` lists partial failures (dropped array elements, attachments
    that could not be stored) that did not fail the operation.
    """

    record: Record
    warnings: list[str] = field(default_factory=list)


class DeleteResult(BaseModel):
    """Outcome of a delete, restore, or permanent delete."""

    id: UUID
    message: str
    state: RecordState
    deleted_at: datetime | None = None
    permanent: bool = False
    warnings: list[str] = Field(default_factory=list)


class OperationResponse(BaseModel):
    """Response body of an insert or update."""

    message: str
    record: RecordRead
    warnings: list[str] = Field(default_factory=list)
