"""Global fixtures: sample entities, in-memory database, API client."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from crudgen.api.app import create_app
from crudgen.models import ANONYMOUS, Actor, Record  # noqa: F401
from crudgen.registry import EntityRegistry
from crudgen.services.attachments import AttachmentManager
from crudgen.services.lifecycle import EntityAdmin
from crudgen.utils.database import dumps_json, get_async_session
from tests.utils import RecordingHooks, category_config, make_upload, product_config

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def actor() -> Actor:
    return Actor(user_id="user-1", tenant_id="tenant-a")


@pytest.fixture
def anonymous() -> Actor:
    return ANONYMOUS


@pytest.fixture
def upload():
    """Factory for in-memory uploaded files."""
    return make_upload


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "storage"


@pytest.fixture
def attachments(storage_root: Path) -> AttachmentManager:
    return AttachmentManager(storage_root=storage_root, uploads_dir="uploads", chunk_size=4)


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def registry(attachments: AttachmentManager, hooks: RecordingHooks) -> EntityRegistry:
    registry = EntityRegistry(attachments=attachments)
    registry.register(category_config())
    registry.register(product_config(hooks))
    return registry


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        json_serializer=dumps_json,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def products(registry: EntityRegistry, test_session: AsyncSession) -> EntityAdmin:
    return registry.admin("products", test_session)


@pytest.fixture
def categories(registry: EntityRegistry, test_session: AsyncSession) -> EntityAdmin:
    return registry.admin("categories", test_session)


@pytest.fixture
def app(registry: EntityRegistry, test_session: AsyncSession) -> FastAPI:
    app = create_app(registry, root_path="")

    async def override_get_session():
        yield test_session

    app.dependency_overrides[get_async_session] = override_get_session
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create test API client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
