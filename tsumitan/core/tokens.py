"""Firebase ID token verification against cached provider signing keys."""

from __future__ import annotations

import json
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jose import jws, jwt
from jose.exceptions import JWSError, JWTError

from tsumitan.config import ISSUER_PREFIX
from tsumitan.core.errors import (
    InvalidAudience,
    InvalidAuthTime,
    InvalidIssuer,
    KeyResolutionFailed,
    KeyStoreError,
    MalformedToken,
    MissingSubject,
    SignatureInvalid,
    TokenExpired,
    TokenNotYetValid,
    UnsupportedAlgorithm,
    ValidityWindowTooLong,
)
from tsumitan.core.key_store import KeyStore

SIGNING_ALGORITHM = "RS256"
MAX_TOKEN_LIFETIME = timedelta(hours=24)
MAX_AUTH_AGE = timedelta(days=30)


@dataclass(frozen=True)
class VerifiedClaims:
    """Claims of a token that passed every check; lives for one request."""

    subject: str
    issuer: str
    audience: str
    issued_at: float
    expires_at: float
    auth_time: float


def _numeric_claim(claims: dict[str, Any], name: str) -> float | None:
    """Return a numeric claim value; booleans, non-numbers, NaN and infinities count as absent."""
    value = claims.get(name)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _audience_matches(audience: Any, expected: str) -> bool:
    if isinstance(audience, str):
        return audience == expected
    if isinstance(audience, list):
        return any(isinstance(item, str) and item == expected for item in audience)
    return False


class TokenVerifier:
    """Verify RS256 ID tokens issued for one Firebase project."""

    def __init__(
        self,
        key_store: KeyStore,
        project_id: str,
        now: Callable[[], float] | None = None,
    ) -> None:
        self._key_store = key_store
        self._project_id = project_id
        self._expected_issuer = f"{ISSUER_PREFIX}{project_id}"
        self._now = now or time.time

    async def verify(self, token: str) -> str:
        """Return the authenticated user id or raise a ``TokenVerificationError``."""
        header = self._parse_header(token)

        algorithm = header.get("alg")
        if algorithm != SIGNING_ALGORITHM:
            raise UnsupportedAlgorithm(f"Expected {SIGNING_ALGORITHM}, got {algorithm!r}.")

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise MalformedToken("Token header has no key id (kid).")

        try:
            public_key = await self._key_store.resolve_key(kid)
        except KeyStoreError as exc:
            raise KeyResolutionFailed(f"Could not resolve kid '{kid}': {exc.detail}") from exc

        claims = self._verify_signature(token, public_key)
        return self._validate_claims(claims).subject

    @staticmethod
    def _parse_header(token: str) -> dict[str, Any]:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise MalformedToken(f"Token structure is invalid: {exc}") from exc
        if not isinstance(header, dict):
            raise MalformedToken("Token header is not a JSON object.")
        return header

    @staticmethod
    def _verify_signature(token: str, public_key: RSAPublicKey) -> dict[str, Any]:
        public_key_pem = public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")
        try:
            payload = jws.verify(token, public_key_pem, algorithms=[SIGNING_ALGORITHM])
        except JWSError as exc:
            raise SignatureInvalid(f"Signature verification failed: {exc}") from exc

        try:
            claims = json.loads(payload)
        except ValueError as exc:
            raise MalformedToken("Token payload is not valid JSON.") from exc
        if not isinstance(claims, dict):
            raise MalformedToken("Token payload is not a JSON object.")
        return claims

    def _validate_claims(self, claims: dict[str, Any]) -> VerifiedClaims:
        """Apply the claim checks in a fixed order; the first failure wins."""
        now = self._now()

        expires_at = _numeric_claim(claims, "exp")
        if expires_at is None or expires_at <= now:
            raise TokenExpired("Token has expired or carries no exp claim.")

        issued_at = _numeric_claim(claims, "iat")
        if issued_at is None or issued_at > now:
            raise TokenNotYetValid("Token is used before its iat or carries no iat claim.")

        if expires_at - issued_at > MAX_TOKEN_LIFETIME.total_seconds():
            raise ValidityWindowTooLong("Token lifetime exceeds 24 hours.")

        issuer = claims.get("iss")
        if not isinstance(issuer, str) or issuer != self._expected_issuer:
            raise InvalidIssuer(f"Expected issuer {self._expected_issuer}, got {issuer!r}.")

        if not _audience_matches(claims.get("aud"), self._project_id):
            raise InvalidAudience(f"Audience does not contain {self._project_id}.")

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise MissingSubject("Token subject is missing or empty.")

        auth_time = _numeric_claim(claims, "auth_time")
        if auth_time is None or auth_time > now:
            raise InvalidAuthTime("auth_time is missing or in the future.")
        if auth_time > issued_at:
            raise InvalidAuthTime("auth_time is after the token's iat.")
        if auth_time < now - MAX_AUTH_AGE.total_seconds():
            raise InvalidAuthTime("auth_time is older than 30 days.")

        return VerifiedClaims(
            subject=subject,
            issuer=issuer,
            audience=self._project_id,
            issued_at=issued_at,
            expires_at=expires_at,
            auth_time=auth_time,
        )
