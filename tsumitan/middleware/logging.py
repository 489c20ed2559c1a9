"""Structured request logging middleware with credential redaction."""

from __future__ import annotations

from time import perf_counter
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REDACTED = "***REDACTED***"
_SENSITIVE_MARKERS = ("token", "authorization", "key", "secret", "password")

logger = structlog.get_logger(__name__)


def _redact_query(values: dict[str, str]) -> dict[str, Any]:
    """Mask query parameters whose name suggests credential material."""
    return {
        key: REDACTED if any(marker in key.lower() for marker in _SENSITIVE_MARKERS) else value
        for key, value in values.items()
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured ``request_completed`` event per request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = perf_counter()
        fields: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "query_params": _redact_query(dict(request.query_params)),
            "user_agent": request.headers.get("user-agent", ""),
        }

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_completed",
                status_code=500,
                duration_ms=round((perf_counter() - start) * 1000, 2),
                **fields,
            )
            raise

        # Auth failures are already logged with their rejection kind.
        event_logger = logger.warning if response.status_code >= 500 else logger.info
        event_logger(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((perf_counter() - start) * 1000, 2),
            user_id=getattr(request.state, "user_id", None),
            **fields,
        )
        return response
