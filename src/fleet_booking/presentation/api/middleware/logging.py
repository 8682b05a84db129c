"""Correlation IDs and access logging for the booking API."""

import logging
import time
from typing import Callable, FrozenSet, Iterable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ....infrastructure.logging import (
    clear_correlation_id,
    generate_correlation_id,
    get_logger,
    log_request,
    log_response,
    set_correlation_id,
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
REDACTED = "[REDACTED]"

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "x-api-key", "proxy-authorization"})

QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"})


def level_for_status(status_code: int) -> int:
    """Server errors log at ERROR, client errors such as a 409 on a full slot at WARNING."""
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def redact_headers(headers: Iterable[tuple]) -> dict:
    return {name: REDACTED if name.lower() in SENSITIVE_HEADERS else value for name, value in headers}


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """
    Bind a correlation ID to every request and echo it on the response.

    Requests to quiet paths get the ID but produce no access log lines.
    """

    def __init__(self, app: ASGIApp, quiet_paths: Optional[FrozenSet[str]] = None):
        super().__init__(app)
        self.quiet_paths = QUIET_PATHS if quiet_paths is None else quiet_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)
        try:
            if request.url.path in self.quiet_paths:
                response = await call_next(request)
            else:
                response = await self._logged(request, call_next)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()

    async def _logged(self, request: Request, call_next: Callable) -> Response:
        method, path = request.method, request.url.path
        log_request(
            logger,
            method,
            path,
            request_query=str(request.query_params) or None,
            request_headers=redact_headers(request.headers.items()),
            client_host=request.client.host if request.client else "unknown"
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request failed: {method} {path}",
                extra={
                    "request_method": method,
                    "request_path": path,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "error_type": type(exc).__name__
                },
                exc_info=True
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        log_response(
            logger, method, path, response.status_code, duration_ms,
            level=level_for_status(response.status_code)
        )
        return response
