"""
Record store connection handling.

A single ``Database`` owns the async engine and session factory, both created
on first use from the settings. ``get_async_session`` is the FastAPI
dependency the entity routers resolve per request.
"""

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from ..settings import DatabaseDriver, Settings, settings
from .logger import logger


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"{type(value).__name__} cannot be stored in a JSON column")


def dumps_json(value: Any) -> str:
    """Serializer for JSON columns; dates, UUIDs and decimals become JSON scalars.

    NaN and infinities are refused since SQLite's JSON functions reject them.
    """
    return json.dumps(value, default=_json_default, allow_nan=False)


class Database:
    """Lazily created async engine plus session factory."""

    def __init__(self, config: Settings) -> None:
        self.config = config
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            options: dict[str, Any] = {"echo": self.config.debug, "json_serializer": dumps_json}
            if self.config.database_driver == DatabaseDriver.SQLITE:
                options["connect_args"] = {"check_same_thread": False}
            else:
                options.update(pool_size=20, max_overflow=0)
            self._engine = create_async_engine(self.config.database_url, **options)
            logger.info(f"Connected to {self.config.database_driver.value} record store")
        return self._engine

    @property
    def sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            self._sessions = async_sessionmaker(self.engine, expire_on_commit=False)
        return self._sessions

    async def create_tables(self) -> None:
        # Importing the models registers the record table on the metadata
        from ..models import Record  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Record store tables ready")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Open a session, committing on success and rolling back on database errors."""
        async with self.sessions() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                logger.error(f"Database error: {e}")
                await session.rollback()
                raise

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Record store connections closed")
        self._engine = None
        self._sessions = None


database = Database(settings)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency yielding a request-scoped session."""
    async with database.session() as session:
        yield session
