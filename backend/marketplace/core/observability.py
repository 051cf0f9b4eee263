from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from marketplace.services.errors import (
    Forbidden,
    InsufficientBalance,
    InvalidArgument,
    InvalidTransition,
    MarketplaceError,
    NotFound,
)

_APP_START_MONOTONIC = time.monotonic()

_SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "2000"))

# Most specific class first.
_ERROR_STATUS: list[tuple[type[MarketplaceError], int]] = [
    (InvalidArgument, 400),
    (Forbidden, 403),
    (NotFound, 404),
    (InvalidTransition, 409),
    (InsufficientBalance, 409),
]


def _app_logger(request: Request) -> logging.Logger:
    logger = getattr(request.app.state, "logger", None)
    return logger or logging.getLogger("marketplace")


def status_for_error(exc: MarketplaceError) -> int:
    for cls, status_code in _ERROR_STATUS:
        if isinstance(exc, cls):
            return status_code
    return 400


def uptime_seconds() -> float:
    return max(0.0, time.monotonic() - _APP_START_MONOTONIC)


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Map engine errors onto HTTP status codes with a structured body."""

    status_code = status_for_error(exc)
    request_id = request.headers.get("x-request-id")
    _app_logger(request).warning(
        "request_rejected",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "code": exc.code,
            "context": exc.context,
        },
    )
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(
        status_code=status_code,
        content=exc.to_detail(),
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler that returns a structured error response.

    Catches all unhandled exceptions and returns a clean JSON response without
    exposing internal details to the client.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

    extra = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "exception_type": type(exc).__name__,
    }
    _app_logger(request).error("unhandled_exception", exc_info=exc, extra=extra)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error. Please try again later.",
            "request_id": request_id,
            "code": "INTERNAL_SERVER_ERROR",
        },
        headers={"X-Request-ID": request_id},
    )


async def request_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Request-level logging middleware.

    Adds/propagates X-Request-ID and measures request duration.
    Does not log request/response bodies.
    """

    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    logger = _app_logger(request)

    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception:
        duration_ms = (time.perf_counter() - start) * 1000.0
        logger.exception(
            "http_request_failed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "duration_ms": round(duration_ms, 2),
            },
        )
        raise

    duration_ms = (time.perf_counter() - start) * 1000.0
    if duration_ms >= _SLOW_REQUEST_MS:
        logger.info(
            "slow_request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "duration_ms": round(duration_ms, 2),
            },
        )

    # Avoid noisy logging for liveness endpoints.
    if not request.url.path.endswith("/health"):
        logger.info(
            "http_request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

    response.headers.setdefault("X-Request-ID", request_id)
    return response
