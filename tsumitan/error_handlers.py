"""Global exception handlers enforcing the ``{"detail", "code"}`` error shape."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tsumitan.services.word_service import WordNotFoundError

_DEFAULT_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    422: "invalid_request",
    503: "service_unavailable",
}

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": code})


def _extract_detail(detail: Any) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict):
        return str(detail.get("detail", "Request failed."))
    return "Request failed."


def register_exception_handlers(app: FastAPI, environment: str) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _DEFAULT_ERROR_CODE_BY_STATUS.get(exc.status_code, "request_failed")
        detail = "Unauthorized." if exc.status_code == 401 else _extract_detail(exc.detail)
        return _error_response(status_code=exc.status_code, detail=detail, code=code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        detail = "Invalid request payload."
        if environment in {"local", "development"}:
            errors = exc.errors()
            if errors:
                detail = f"Invalid request payload: {errors[0].get('msg', 'validation error')}."
        return _error_response(status_code=422, detail=detail, code="invalid_request")

    @app.exception_handler(WordNotFoundError)
    async def handle_word_not_found(request: Request, exc: WordNotFoundError) -> JSONResponse:
        return _error_response(status_code=404, detail="Word not found.", code="word_not_found")

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        detail = str(exc) if environment in {"local", "development"} else "Internal server error."
        return _error_response(status_code=500, detail=detail, code="internal_error")
