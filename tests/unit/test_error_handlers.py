"""Unit tests for the global error response contract."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient

from tsumitan.error_handlers import register_exception_handlers
from tsumitan.services.word_service import WordNotFoundError


def _build_app(environment: str) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app, environment=environment)

    @app.get("/denied")
    async def denied() -> None:
        raise HTTPException(status_code=401, detail="token signature mismatch")

    @app.get("/missing-word")
    async def missing_word() -> None:
        raise WordNotFoundError(user_id="uid-1", word="aplomb")

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("database password is hunter2")

    return app


async def _get(app: FastAPI, path: str):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        return await client.get(path)


@pytest.mark.asyncio
async def test_unauthorized_detail_is_generic() -> None:
    response = await _get(_build_app("production"), "/denied")

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized.", "code": "unauthorized"}


@pytest.mark.asyncio
async def test_word_not_found_maps_to_404() -> None:
    response = await _get(_build_app("production"), "/missing-word")

    assert response.status_code == 404
    assert response.json()["code"] == "word_not_found"


@pytest.mark.asyncio
async def test_unexpected_errors_masked_outside_development() -> None:
    response = await _get(_build_app("production"), "/boom")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error.", "code": "internal_error"}


@pytest.mark.asyncio
async def test_unexpected_errors_visible_in_development() -> None:
    response = await _get(_build_app("development"), "/boom")

    assert response.status_code == 500
    assert "hunter2" in response.json()["detail"]
