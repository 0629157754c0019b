"""Global exception handlers — translate domain errors to HTTP responses.

Every failure uses the ``{"status": "error", "message": "..."}`` envelope.
Transient failures also carry ``Retry-After`` since nothing in the service
retries on the caller's behalf.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dex_publisher.domain.exceptions import (
    AuthorizationError,
    CacheInvariantError,
    ConflictError,
    DexPublisherError,
    NotFoundError,
    TransientError,
    UnknownError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_EXCEPTION_STATUS: list[tuple[type[DexPublisherError], int]] = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (AuthorizationError, 403),
    (ConflictError, 409),
    (TransientError, 503),
    (CacheInvariantError, 500),
    (UnknownError, 502),
]

_RETRY_AFTER_SECONDS = "30"


def _error_json(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
        headers=headers,
    )


def _domain_handler(status_code: int):  # type: ignore[no-untyped-def]
    async def handler(request: Request, exc: DexPublisherError) -> JSONResponse:
        level = logging.ERROR if status_code >= 500 and status_code != 503 else logging.WARNING
        logger.log(
            level,
            "%s %s -> %d %s (upstream status %s): %s",
            request.method,
            request.url.path,
            status_code,
            type(exc).__name__,
            exc.status_code,
            exc,
        )
        headers = {"Retry-After": _RETRY_AFTER_SECONDS} if status_code == 503 else None
        return _error_json(status_code, str(exc), headers)

    return handler


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""

    for exc_type, code in _EXCEPTION_STATUS:
        app.add_exception_handler(exc_type, _domain_handler(code))

    # ── Request body / path validation ──────────────────────────────────

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = [
            f"{'.'.join(str(p) for p in err.get('loc', []))}: {err.get('msg', 'invalid')}"
            for err in exc.errors()
        ]
        return _error_json(422, "; ".join(messages))

    # ── Anything that escaped the use cases ─────────────────────────────

    @app.exception_handler(Exception)
    async def generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_json(500, "An unexpected error occurred. Please try again later.")
