"""Exception handlers mapping domain errors to HTTP responses.

Hey future me - SQLAlchemy OperationalError is handled here too. While a big scan is
writing, SQLite can stay locked past the retry budget of a read; the caller gets a 503
with Retry-After instead of a 500 and simply asks again.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from musicindex.domain.exceptions import (
    DomainException,
    EntityNotFoundException,
    PathDecodeError,
    StoreError,
)

logger = logging.getLogger(__name__)


# Starlette resolves handlers along the exception's MRO, so the specific handlers below
# win over the DomainException catch-all regardless of registration order.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain exceptions and database lock errors.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        logger.info(
            f"Not found at {request.url.path}: {exc.entity_type} {exc.entity_id}",
            extra={"path": request.url.path, "entity_type": exc.entity_type},
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": exc.message},
        )

    @app.exception_handler(PathDecodeError)
    async def path_decode_handler(request: Request, exc: PathDecodeError) -> JSONResponse:
        logger.info(f"Undecodable id at {request.url.path}: {exc.path_id!r}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": exc.message},
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"Store error at {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Metadata store unavailable, retry shortly"},
            headers={"Retry-After": "2"},
        )

    @app.exception_handler(OperationalError)
    async def operational_error_handler(
        request: Request, exc: OperationalError
    ) -> JSONResponse:
        logger.warning(f"Database busy at {request.url.path}: {exc.orig}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database is busy, retry shortly"},
            headers={"Retry-After": "2"},
        )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        logger.warning(
            f"{type(exc).__name__} at {request.url.path}: {exc.message}"
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": exc.message},
        )
