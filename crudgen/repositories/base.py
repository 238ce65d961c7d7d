"""Generic async repository over a single SQLModel table."""

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from sqlmodel import SQLModel, select


class BaseRepository[ModelT: SQLModel]:
    """Persistence primitives shared by the concrete repositories.

    Every write commits immediately and refreshes the instance so callers see
    server-side values. On failure the caller is expected to ``rollback``.
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]):
        self.session = session
        self.model_class = model_class

    def build_query(self, base_query: Select | None = None) -> Select:
        """Starting point for every read; subclasses narrow it."""
        return select(self.model_class) if base_query is None else base_query

    async def _commit(self, instance: ModelT) -> ModelT:
        self.session.add(instance)
        await self.session.commit()
        await self.session.refresh(instance)
        return instance

    async def create(self, instance: ModelT) -> ModelT:
        return await self._commit(instance)

    async def update(
        self, instance: ModelT, changes: Mapping[str, Any], keep_none: bool = False
    ) -> ModelT:
        """Assign ``changes`` onto ``instance`` and persist it.

        Args:
            instance: Row to modify
            changes: Column values keyed by attribute name; unknown names are ignored
            keep_none: Assign ``None`` values instead of skipping them
        """
        for attribute, value in changes.items():
            if value is None and not keep_none:
                continue
            if hasattr(instance, attribute):
                setattr(instance, attribute, value)
        return await self._commit(instance)

    async def delete(self, instance: ModelT) -> None:
        await self.session.delete(instance)
        await self.session.commit()

    async def execute_query(self, query: Select) -> Sequence[ModelT]:
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count_query(self, query: Select) -> int:
        """Number of rows ``query`` selects, ignoring its ordering."""
        counted = select(func.count()).select_from(query.order_by(None).subquery())
        return (await self.session.execute(counted)).scalar() or 0

    async def rollback(self) -> None:
        await self.session.rollback()
