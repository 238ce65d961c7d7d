"""Repository for Record-specific database operations."""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from sqlmodel import col, select

from crudgen.exceptions.domain import NotFoundError
from crudgen.models import Record
from crudgen.models.record import utcnow
from crudgen.repositories.base import BaseRepository
from crudgen.utils.logger import logger


class RecordRepository(BaseRepository[Record]):
    """Record access scoped to one entity kind."""

    def __init__(self, session: AsyncSession, entity: str, label: str | None = None):
        """Initialize record repository.

        Args:
            session: Database session
            entity: Entity kind every query is restricted to
            label: Human readable entity name used in error messages
        """
        super().__init__(session, Record)
        self.entity = entity
        self.label = label or entity

    def build_query(self, base_query: Select | None = None) -> Select:
        return super().build_query(base_query).where(col(Record.entity) == self.entity)

    async def _first(self, statement: Select) -> Record | None:
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def get(self, record_id: UUID) -> Record:
        """Get a record of this entity in any lifecycle state.

        Raises:
            NotFoundError: If the record doesn't exist
        """
        record = await self._first(self.build_query().where(col(Record.id) == record_id))
        if record is None:
            raise NotFoundError(self.label, record_id)
        return record

    async def get_active(self, record_id: UUID) -> Record:
        """Get a record whose soft-delete timestamp is absent.

        Raises:
            NotFoundError: If the record doesn't exist or is soft-deleted
        """
        statement = self.build_query().where(
            col(Record.id) == record_id, col(Record.deleted_at).is_(None)
        )
        record = await self._first(statement)
        if record is None:
            raise NotFoundError(self.label, record_id)
        return record

    async def get_soft_deleted(self, record_id: UUID) -> Record:
        """Get a soft-deleted record.

        Raises:
            NotFoundError: If the record doesn't exist or is not soft-deleted
        """
        statement = self.build_query().where(
            col(Record.id) == record_id, col(Record.deleted_at).is_not(None)
        )
        record = await self._first(statement)
        if record is None:
            raise NotFoundError(self.label, record_id, state="deleted")
        return record

    async def find_conflict(
        self, field: str, value: Any, exclude_id: UUID | None = None
    ) -> Record | None:
        """Find another record of this entity holding ``value`` in ``field``."""
        element = col(Record.data)[field]
        if isinstance(value, bool):
            condition = element.as_boolean() == value
        elif isinstance(value, (int, float)):
            condition = element.as_float() == float(value)
        else:
            condition = element.as_string() == str(value)

        statement = self.build_query().where(condition)
        if exclude_id is not None:
            statement = statement.where(col(Record.id) != exclude_id)
        return await self._first(statement)

    async def soft_delete(self, record: Record, user_id: str | None = None) -> Record:
        now = utcnow()
        update_data: dict[str, Any] = {"deleted_at": now, "updated_at": now}
        if user_id:
            update_data["updated_by"] = user_id
        record = await self.update(record, update_data)
        logger.info(f"{self.label} {record.id} soft-deleted")
        return record

    async def restore(self, record: Record, user_id: str | None = None) -> Record:
        update_data: dict[str, Any] = {"deleted_at": None, "updated_at": utcnow()}
        if user_id:
            update_data["updated_by"] = user_id
        record = await self.update(record, update_data, keep_none=True)
        logger.info(f"{self.label} {record.id} restored")
        return record

    async def purge(self, record: Record) -> None:
        record_id = record.id
        await self.delete(record)
        logger.info(f"{self.label} {record_id} permanently deleted")

    async def list_active(self) -> Sequence[Record]:
        """All active records of this entity, oldest first."""
        statement = (
            self.build_query()
            .where(col(Record.deleted_at).is_(None))
            .order_by(col(Record.created_at).asc(), col(Record.id).asc())
        )
        return await self.execute_query(statement)


async def all_record_ids(session: AsyncSession) -> set[UUID]:
    """Identities of every stored record, across entity kinds and states."""
    result = await session.execute(select(Record.id))
    return set(result.scalars().all())
