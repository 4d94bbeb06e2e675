"""API middleware: CORS, request logging, and error handling.

Starlette middleware is a stack (last added, first executed).  ``main.py``
adds ErrorHandlingMiddleware first and RequestLoggingMiddleware second, so
a request flows::

    Client -> RequestLogging -> ErrorHandling -> route handler

and RequestLoggingMiddleware sees the final status code, including the
structured error bodies produced by ErrorHandlingMiddleware.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import (
    DocumentReadError,
    GroundwireError,
    IngestionError,
    ProviderUnavailableError,
    RAGError,
)
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def status_for(exc: Exception) -> int:
    """Map an application exception to an HTTP status code."""
    if isinstance(exc, FileNotFoundError):
        return 404
    if isinstance(exc, DocumentReadError):
        return 422
    if isinstance(exc, IngestionError):
        return 400
    if isinstance(exc, (RAGError, ProviderUnavailableError)):
        return 503
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; pass the deployed origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request once it completes, tagged with a request id.

    The id comes from an incoming ``X-Request-ID`` header or is generated,
    is bound into structlog context vars for every event logged while the
    request runs, and is echoed on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:16]
        start = time.perf_counter()
        response: Response | None = None

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
                response.headers[REQUEST_ID_HEADER] = request_id
                return response
            finally:
                _logger.info(
                    "http_request",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code if response else 500,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn application errors into structured JSON :class:`ErrorResponse` bodies.

    ``GroundwireError`` subclasses and ``FileNotFoundError`` are mapped by
    :func:`status_for` (404 missing file, 422 unreadable document, 503 store
    or provider failure, 500 otherwise).  Details are logged server-side;
    the client sees the error type and message only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except (GroundwireError, FileNotFoundError) as exc:
            status_code = status_for(exc)
            message = exc.message if isinstance(exc, GroundwireError) else str(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=message,
                provider=getattr(exc, "provider_name", None),
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
