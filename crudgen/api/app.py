"""
FastAPI application factory for crudgen.

``create_app`` mounts the menu router plus one generated router per entity
of the given registry under ``/api/admin``, and serves stored attachments
under ``/<uploads_dir>``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from crudgen import __version__
from crudgen.api.exception_handlers import setup_exception_handlers
from crudgen.api.routers.entity import build_entity_router, menu_router
from crudgen.registry import EntityRegistry
from crudgen.settings import settings
from crudgen.utils.database import database
from crudgen.utils.logger import logger

ADMIN_PREFIX = "/api/admin"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Ensure the record table exists before serving; close connections afterwards."""
    await database.create_tables()
    logger.info(f"Serving {len(app.state.registry)} entities")
    try:
        yield
    finally:
        await database.dispose()


def create_app(registry: EntityRegistry, root_path: str | None = None) -> FastAPI:
    """
    Build the administration application for ``registry``.

    Args:
        registry: Entities to administer
        root_path: ASGI root path; defaults to ``settings.root_url``
    """
    app = FastAPI(
        title="crudgen",
        description="Schema-driven record administration",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        root_path=root_path if root_path is not None else settings.root_url.rstrip("/"),
    )
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    app.include_router(menu_router, prefix=ADMIN_PREFIX)
    for config in registry:
        app.include_router(build_entity_router(config), prefix=f"{ADMIN_PREFIX}/{config.model_name}")
        logger.debug(f"Mounted {ADMIN_PREFIX}/{config.model_name}")

    # Stored attachment paths start with the uploads directory, so they double as URLs
    attachments = registry.attachments
    attachments.uploads_root.mkdir(parents=True, exist_ok=True)
    app.mount(
        f"/{attachments.uploads_dir}",
        StaticFiles(directory=attachments.uploads_root),
        name="uploads",
    )

    return app
