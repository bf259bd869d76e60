"""Request logging middleware.

- Logs metadata only: method, route template, status, duration, request id.
- Never logs bodies (health narratives), query strings or headers (API keys).
- Generates or propagates X-Request-ID and exposes it on `request.state`.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.core.middleware.route_label import safe_route_label

logger = logging.getLogger("app.http")

REQUEST_ID_HEADER = "X-Request-ID"
_SAFE_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def resolve_request_id(request: Request) -> str:
    """Accept a caller-provided id only if it is short and log-safe; else mint one."""

    candidate = request.headers.get(REQUEST_ID_HEADER)
    if candidate and _SAFE_REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return uuid.uuid4().hex


def _request_metadata(
    request: Request, *, request_id: str, status_code: int, started: float
) -> dict[str, Any]:
    return {
        "request_id": request_id,
        "http_method": request.method,
        "request_path": safe_route_label(request),
        "status_code": status_code,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
    }


class HttpLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request)
        started = time.perf_counter()
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001 - log with stack trace, then let Starlette answer 500
            logger.exception(
                "Unhandled exception while processing request",
                extra=_request_metadata(
                    request, request_id=request_id, status_code=500, started=started
                ),
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "Request completed",
            extra=_request_metadata(
                request, request_id=request_id, status_code=response.status_code, started=started
            ),
        )
        return response
