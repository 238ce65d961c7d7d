"""
HTTP translation of crudgen's domain exceptions.

Services raise the exceptions of ``crudgen.exceptions.domain``; the handlers
registered here turn each kind into its status code and JSON body.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..exceptions.domain import (
    ConfigurationError,
    DuplicateKeyError,
    InternalError,
    InvalidIdentityError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from ..settings import settings
from ..utils.logger import logger


def setup_exception_handlers(app: FastAPI) -> None:
    """Register a handler for every domain exception on ``app``."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        """Convert ValidationError to 422 with field errors and submitted values."""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=jsonable_encoder(
                {
                    "detail": str(exc) if str(exc) else "Validation failed",
                    "errors": [e.to_dict() for e in exc.errors],
                    "values": exc.values,
                }
            ),
        )

    @app.exception_handler(InvalidIdentityError)
    async def handle_invalid_identity(_: Request, exc: InvalidIdentityError) -> JSONResponse:
        """Convert InvalidIdentityError to 400 response."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(InvalidOperationError)
    async def handle_invalid_operation(_: Request, exc: InvalidOperationError) -> JSONResponse:
        """Convert InvalidOperationError to 400 response."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc) if str(exc) else "Operation not supported"},
        )

    @app.exception_handler(DuplicateKeyError)
    async def handle_duplicate_key(_: Request, exc: DuplicateKeyError) -> JSONResponse:
        """Convert DuplicateKeyError to 409 response."""
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=jsonable_encoder({"detail": str(exc), "field": exc.field, "value": exc.value}),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        """Convert NotFoundError to 404 response."""
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc) if str(exc) else "Resource not found"},
        )

    @app.exception_handler(InternalError)
    async def handle_internal_error(_: Request, exc: InternalError) -> JSONResponse:
        """Convert InternalError to 500; details are only exposed in debug mode."""
        logger.error(f"Internal error: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc) if settings.debug else "Internal server error"},
        )

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(_: Request, exc: ConfigurationError) -> JSONResponse:
        """Convert ConfigurationError to 500 response."""
        logger.error(f"Configuration error: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc) if settings.debug else "Internal server error"},
        )
