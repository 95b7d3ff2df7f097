"""Request logging middleware.

One line per request on the ``api.request`` logger:

* method, path and query string (configured keys redacted)
* response status and duration
* query strings are truncated by byte length to avoid log flooding
* noisy paths (docs/openapi) are automatically skipped
"""

from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import parse_qsl, urlencode

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .logging_config import (
    get_redact_keys,
    get_request_exclude_paths,
    get_request_log_level,
    get_request_truncate_bytes,
)


LOG = logging.getLogger("api.request")


def _should_skip(path: str) -> bool:
    exclusions = get_request_exclude_paths()
    return any(path.startswith(prefix) for prefix in exclusions)


def _redact_query(encoded: str, redact_keys: set[str]) -> str:
    pairs = parse_qsl(encoded, keep_blank_values=True)
    sanitized = []
    for key, value in pairs:
        sanitized.append((key, "****" if key.lower() in redact_keys else value))
    return urlencode(sanitized, safe="*")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs each request with its outcome."""

    def __init__(self, app, truncate_bytes: Optional[int] = None):
        super().__init__(app)
        self.log_level = get_request_log_level()
        if truncate_bytes is None or truncate_bytes <= 0:
            truncate_bytes = get_request_truncate_bytes()
        self.truncate_bytes = truncate_bytes
        self.redact_keys = get_redact_keys()

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        if _should_skip(request.url.path):
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        LOG.log(
            self.log_level,
            "%s %s %s %.1fms",
            request.method.upper(),
            self._target(request),
            response.status_code,
            duration_ms,
            extra={
                "request_id": request.headers.get("x-request-id"),
                "client": request.client.host if request.client else None,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 1),
            },
        )
        return response

    def _target(self, request: Request) -> str:
        path = request.url.path
        query = request.url.query
        if not query:
            return path
        if self.redact_keys:
            query = _redact_query(query, self.redact_keys)
        return f"{path}?{self._truncate(query)}"

    def _truncate(self, content: str) -> str:
        encoded = content.encode("utf-8")
        if len(encoded) <= self.truncate_bytes:
            return content
        cut = encoded[: self.truncate_bytes]
        return cut.decode("utf-8", errors="replace") + "...<truncated>"
