#!/usr/bin/env python3
"""crudgen CLI - management utility for a crudgen deployment."""

import argparse
import asyncio
import importlib
import sys

from crudgen.exceptions.domain import ConfigurationError
from crudgen.registry import EntityRegistry
from crudgen.repositories.record_repository import all_record_ids
from crudgen.services.attachments import AttachmentManager
from crudgen.settings import settings
from crudgen.utils.database import database
from crudgen.utils.logger import logger


def load_registry(target: str) -> EntityRegistry:
    """Import an ``EntityRegistry`` given as ``package.module:attribute``.

    Raises:
        ConfigurationError: If the target cannot be imported or is not a registry
    """
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Expected 'module:attribute', got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import {module_name}: {e}") from e

    registry = getattr(module, attribute, None)
    if callable(registry) and not isinstance(registry, EntityRegistry):
        registry = registry()
    if not isinstance(registry, EntityRegistry):
        raise ConfigurationError(f"{target} is not an EntityRegistry")
    return registry


def run_server(registry_target: str, host: str | None = None, port: int | None = None) -> None:
    """Run the crudgen server for the entities of ``registry_target``."""
    import uvicorn

    from crudgen.api.app import create_app

    host = host or settings.host
    port = port or settings.port
    app = create_app(load_registry(registry_target))

    logger.info(f"Starting crudgen server at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info" if settings.debug else "warning")


async def init_database() -> None:
    logger.info("Initializing database...")
    await database.create_tables()
    await database.dispose()
    logger.info("Database initialized successfully")


async def sweep_uploads() -> int:
    """Remove attachment directories left behind by records that do not exist."""
    async with database.session() as session:
        known_ids = await all_record_ids(session)
    removed = await AttachmentManager().sweep_orphans(known_ids)
    await database.dispose()
    logger.info(f"Swept {len(removed)} orphaned attachment directories")
    return len(removed)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="crudgen", description="crudgen management CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")

    run_parser = subparsers.add_parser("run", help="Run the API server")
    run_parser.add_argument(
        "registry", type=str, help="Entity registry to serve, as 'package.module:attribute'"
    )
    run_parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    run_parser.add_argument("--port", type=int, default=None, help="Port to bind to")

    subparsers.add_parser("sweep-uploads", help="Remove attachments of records that no longer exist")

    args = parser.parse_args()

    if args.command == "init-db":
        asyncio.run(init_database())
    elif args.command == "run":
        try:
            run_server(args.registry, args.host, args.port)
        except ConfigurationError as e:
            logger.error(str(e))
            sys.exit(1)
    elif args.command == "sweep-uploads":
        asyncio.run(sweep_uploads())
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
