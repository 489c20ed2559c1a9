"""Bearer token authentication middleware."""

from __future__ import annotations

from collections.abc import Iterable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from tsumitan.core.errors import TokenVerificationError
from tsumitan.core.tokens import TokenVerifier

LOCAL_USER_ID = "local-user"
USER_ID_CONTEXT_KEY = "user_id"

logger = structlog.get_logger(__name__)


def unauthorized_response() -> JSONResponse:
    """Build the uniform client-facing rejection; rejection kinds stay server-side."""
    return JSONResponse(status_code=401, content={"detail": "Unauthorized.", "code": "unauthorized"})


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from ``Bearer <token>``; anything else yields None."""
    parts = (authorization or "").strip().split(" ")
    if len(parts) != 2:
        return None
    scheme, token = parts
    if scheme.lower() != "bearer":
        return None
    return token or None


def _client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    client = request.client
    return client.host if client else "unknown"


class FirebaseAuthMiddleware(BaseHTTPMiddleware):
    """Authenticate every request and attach the user id to request state."""

    def __init__(
        self,
        app,
        verifier: TokenVerifier,
        environment: str = "production",
        exempt_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self._verifier = verifier
        self._bypass = environment == "local"
        self._exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next) -> Response:
        """Verify the bearer token before handing the request on."""
        if request.url.path in self._exempt_paths:
            return await call_next(request)

        if self._bypass:
            logger.info(
                "auth_bypassed",
                user_id=LOCAL_USER_ID,
                ip_address=_client_ip(request),
                path=request.url.path,
            )
            return await self._forward(request, call_next, LOCAL_USER_ID)

        token = extract_bearer_token(request.headers.get("authorization"))
        if token is None:
            if "authorization" in request.headers:
                code = "invalid_authorization_header"
            else:
                code = "missing_authorization"
            self._log_failure(request, code=code, detail="Bearer token not supplied.")
            return unauthorized_response()

        try:
            user_id = await self._verifier.verify(token)
        except TokenVerificationError as exc:
            self._log_failure(request, code=exc.code, detail=exc.detail)
            return unauthorized_response()

        logger.info(
            "auth_success",
            user_id=user_id,
            ip_address=_client_ip(request),
            path=request.url.path,
        )
        return await self._forward(request, call_next, user_id)

    @staticmethod
    async def _forward(request: Request, call_next, user_id: str) -> Response:
        request.state.user_id = user_id
        structlog.contextvars.bind_contextvars(user_id=user_id)
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars(USER_ID_CONTEXT_KEY)

    @staticmethod
    def _log_failure(request: Request, code: str, detail: str) -> None:
        logger.warning(
            "auth_failure",
            event_type="auth_failure",
            code=code,
            detail=detail,
            ip_address=_client_ip(request),
            path=request.url.path,
            method=request.method,
        )
