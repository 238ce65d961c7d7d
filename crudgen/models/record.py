"""
Record models for crudgen.

A single ``record`` table stores every entity: field values live in the JSON
``data`` column while identity, audit stamps and the soft-delete timestamp are
real columns so that list queries can filter on them directly.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import computed_field
from sqlalchemy import DateTime
from sqlmodel import JSON, Column, Field, SQLModel

from crudgen.types import RecordData

from .base import RecordState


def utcnow() -> datetime:
    return datetime.now(UTC)


class RecordBase(SQLModel):
    """Fields shared by the table model and its read schema."""

    entity: str = Field(index=True, max_length=64)
    data: RecordData = Field(default_factory=dict, sa_column=Column(JSON))

    created_by: str | None = Field(default=None, max_length=64)
    updated_by: str | None = Field(default=None, max_length=64)
    tenant_id: str | None = Field(default=None, index=True, max_length=64)


class Record(RecordBase, table=True):
    """An entity instance with a stable identity and audit stamps."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    deleted_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True, index=True)
    )

    @property
    def state(self) -> RecordState:
        """Active iff the soft-delete timestamp is absent."""
        return RecordState.active if self.deleted_at is None else RecordState.soft_deleted

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.id == other.id


class RecordRead(RecordBase):
    """Response schema for a record."""

    id: UUID
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @computed_field
    def state(self) -> RecordState:
        return RecordState.active if self.deleted_at is None else RecordState.soft_deleted
