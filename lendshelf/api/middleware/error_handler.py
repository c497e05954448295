"""
Error Handling Middleware for LendShelf

Centralized error handling:
- Structured error responses with stable codes
- Logging of errors
- Exception translation
"""

import traceback
from datetime import datetime
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from lendshelf.lending.errors import LendingError
from .logging import get_request_id


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: Optional[str] = None,
    retryable: bool = False,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "code": code,
            "detail": detail,
            "retryable": retryable,
            "request_id": get_request_id() or None,
            "timestamp": datetime.utcnow().isoformat(),
        },
        headers=headers,
    )


def _format_validation_errors(exc: RequestValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def setup_exception_handlers(app):
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(LendingError)
    async def lending_exception_handler(request: Request, exc: LendingError):
        if exc.status_code >= 500:
            logger.error(f"LendShelf error: {exc.code} - {exc.message} ({request.url.path})")
        else:
            logger.info(f"LendShelf error: {exc.code} - {exc.message} ({request.url.path})")
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
            retryable=exc.retryable,
            headers={"Retry-After": "1"} if exc.retryable else None,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Validation error on {request.url.path}: {exc.errors()}")
        return create_error_response(
            error="Invalid input",
            code="INVALID_INPUT",
            status_code=400,
            detail=_format_validation_errors(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        codes = {401: "UNAUTHENTICATED", 404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}
        return create_error_response(
            error=str(exc.detail),
            code=codes.get(exc.status_code, "HTTP_ERROR"),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}\n{traceback.format_exc()}"
        )

        # Don't expose internal error details
        return create_error_response(
            error="Internal Server Error",
            code="INTERNAL_ERROR",
            status_code=500,
            detail="An unexpected error occurred",
        )
