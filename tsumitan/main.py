"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from tsumitan.config import Settings, configure_structlog, get_settings
from tsumitan.core.key_client import PublicKeyClient
from tsumitan.core.key_store import KeyStore
from tsumitan.core.tokens import TokenVerifier
from tsumitan.db.session import build_engine, build_session_factory
from tsumitan.error_handlers import register_exception_handlers
from tsumitan.middleware.auth import FirebaseAuthMiddleware
from tsumitan.middleware.correlation_id import CorrelationIdMiddleware
from tsumitan.middleware.logging import LoggingMiddleware

logger = structlog.get_logger(__name__)


def build_key_store(settings: Settings) -> KeyStore:
    """Build the process-wide key store from provider settings."""
    client = PublicKeyClient(
        url=str(settings.firebase.public_keys_url),
        deadline_seconds=settings.firebase.fetch_timeout_seconds,
    )
    return KeyStore(client=client, ttl_seconds=settings.firebase.cache_ttl_seconds)


def create_app(
    settings: Settings | None = None,
    key_store: KeyStore | None = None,
    engine: AsyncEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators are constructed here once and shared through ``app.state``;
    tests pass their own ``key_store`` and ``engine``.
    """
    settings = settings or get_settings()
    configure_structlog(settings)

    key_store = key_store or build_key_store(settings)
    engine = engine or build_engine(settings.database)
    verifier = TokenVerifier(key_store=key_store, project_id=settings.firebase.project_id)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "service_started",
            project_id=settings.firebase.project_id,
            auth_bypass=settings.app.environment == "local",
        )
        try:
            yield
        finally:
            await key_store.aclose()
            await engine.dispose()
            logger.info("service_stopped")

    app = FastAPI(title=settings.app.service, lifespan=lifespan)
    app.state.settings = settings
    app.state.key_store = key_store
    app.state.token_verifier = verifier
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        FirebaseAuthMiddleware,
        verifier=verifier,
        environment=settings.app.environment,
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(app, environment=settings.app.environment)
    return app
