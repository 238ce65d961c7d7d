"""
Logging for crudgen.

Everything is routed through loguru: crudgen modules import ``logger`` from
here, and records emitted by uvicorn, SQLAlchemy and other libraries through
the standard ``logging`` module are forwarded to the same sinks.
"""

import logging
import sys

from loguru import logger

from ..settings import Settings, settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <8}</level> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

# Library loggers that install their own handlers and must be redirected
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine", "fastapi")


class InterceptHandler(logging.Handler):
    """Forward standard ``logging`` records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real call site
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(config: Settings) -> None:
    """(Re)install loguru sinks according to ``config``."""
    logger.remove()
    logger.add(sys.stderr, level=config.log_level, format=CONSOLE_FORMAT, colorize=True)

    if config.log_to_file:
        log_path = config.log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=config.log_level,
            format=FILE_FORMAT,
            rotation=config.log_rotation,
            retention=config.log_retention,
            serialize=config.log_serialize,
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in FORWARDED_LOGGERS:
        forwarded = logging.getLogger(name)
        forwarded.handlers = [InterceptHandler()]
        forwarded.propagate = False


configure_logging(settings)

__all__ = ["configure_logging", "logger"]
