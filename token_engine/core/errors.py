"""Standardized error responses across all API endpoints."""
from typing import Any

import sentry_sdk
import structlog
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from token_engine.modules.tokens.exceptions import (
    AggregateIntegrityError,
    ConcurrentModification,
    DeployerFailure,
    DeploymentBlocked,
    FieldErrors,
    InvalidTransition,
    TokenEngineError,
    TokenNotEditable,
    TokenNotFound,
    UnknownStandard,
    UnknownStatus,
)


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""
    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"

logger = structlog.get_logger()

# Most specific first: DeploymentInProgress is a ConcurrentModification.
_STATUS_CODES: tuple[tuple[type[TokenEngineError], int], ...] = (
    (TokenNotFound, 404),
    (UnknownStandard, 422),
    (FieldErrors, 422),
    (TokenNotEditable, 409),
    (InvalidTransition, 409),
    (ConcurrentModification, 409),
    (DeploymentBlocked, 409),
    (DeployerFailure, 502),
    (UnknownStatus, 500),
    (AggregateIntegrityError, 500),
)


def status_code_for(exc: TokenEngineError) -> int:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 400


async def token_engine_exception_handler(request: Request, exc: TokenEngineError) -> JSONResponse:
    """Translate engine errors into the standard envelope."""
    request_id = request.headers.get("x-request-id", "unknown")
    status_code = status_code_for(exc)

    if status_code >= 500:
        logger.error(
            "token_engine.error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            request_id=request_id,
        )
        sentry_sdk.capture_exception(exc)
    else:
        logger.info(
            "token_engine.rejected",
            error=exc.code,
            path=request.url.path,
            request_id=request_id,
        )

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.code,
            message=str(exc),
            detail=exc.to_detail(),
            request_id=request_id,
        ).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    request_id = request.headers.get("x-request-id", "unknown")

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=request_id,
    )

    sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Our team has been notified.",
            "request_id": request_id,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    request_id = request.headers.get("x-request-id", "unknown")

    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", f"http_{exc.status_code}")
        message = exc.detail.get("message", str(exc.detail))
        detail: Any = exc.detail.get("detail")
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail,
            "request_id": request_id,
        },
        headers=dict(exc.headers or {}),
    )
