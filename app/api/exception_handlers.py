"""Global exception handlers that map domain exceptions to HTTP responses."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.errors import (
    DUPLICATE_RESOURCE,
    FORBIDDEN,
    INTERNAL_ERROR,
    INVALID_STATE,
    NOT_FOUND,
    UNAUTHORIZED,
    VALIDATION_ERROR,
    DomainValidationError,
    DuplicateResourceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from app.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    """Return a standardized error response with detail and machine-readable code."""
    body = ErrorResponse(detail=detail, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def domain_validation_error_handler(
    _request: Request, exc: DomainValidationError
) -> JSONResponse:
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        str(exc),
        VALIDATION_ERROR,
    )


def invalid_state_error_handler(_request: Request, exc: InvalidStateError) -> JSONResponse:
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        str(exc),
        INVALID_STATE,
    )


def duplicate_resource_error_handler(
    _request: Request, exc: DuplicateResourceError
) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        str(exc),
        DUPLICATE_RESOURCE,
    )


def not_found_error_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(
        status.HTTP_404_NOT_FOUND,
        str(exc),
        NOT_FOUND,
    )


def forbidden_error_handler(_request: Request, exc: ForbiddenError) -> JSONResponse:
    return _error_response(
        status.HTTP_403_FORBIDDEN,
        str(exc),
        FORBIDDEN,
    )


def unauthorized_error_handler(_request: Request, exc: UnauthorizedError) -> JSONResponse:
    return _error_response(
        status.HTTP_401_UNAUTHORIZED,
        str(exc),
        UNAUTHORIZED,
    )


def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        INTERNAL_ERROR,
    )


def register_exception_handlers(app):
    """Register domain exception handlers on the FastAPI app."""
    app.add_exception_handler(DomainValidationError, domain_validation_error_handler)
    app.add_exception_handler(InvalidStateError, invalid_state_error_handler)
    app.add_exception_handler(DuplicateResourceError, duplicate_resource_error_handler)
    app.add_exception_handler(ForbiddenError, forbidden_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
