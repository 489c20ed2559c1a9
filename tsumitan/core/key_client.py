"""Async HTTP client for the identity provider's public certificate endpoint."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from tsumitan.core.errors import DecodeError, FetchError

DEFAULT_MAX_AGE_SECONDS = 3600
DEFAULT_TIMEOUT = httpx.Timeout(connect=2.0, read=5.0, write=5.0, pool=5.0)


@dataclass(frozen=True)
class CertificateBundle:
    """Raw kid to PEM certificate mapping plus its advertised lifetime."""

    certificates: dict[str, str]
    max_age_seconds: int


def parse_max_age(cache_control: str | None) -> int:
    """Return the ``max-age`` directive in seconds, defaulting to one hour."""
    if not cache_control:
        return DEFAULT_MAX_AGE_SECONDS
    for directive in cache_control.split(","):
        name, _, value = directive.strip().partition("=")
        if name.strip().lower() != "max-age":
            continue
        value = value.strip().strip('"')
        if value.isdigit():
            return int(value)
        return DEFAULT_MAX_AGE_SECONDS
    return DEFAULT_MAX_AGE_SECONDS


class PublicKeyClient:
    """Fetch PEM encoded X.509 signing certificates from the identity provider."""

    def __init__(
        self,
        url: str,
        deadline_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create client with a hard per-fetch deadline and optional injected transport."""
        self._url = url
        self._deadline_seconds = deadline_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    @property
    def url(self) -> str:
        return self._url

    async def fetch_certificates(self) -> CertificateBundle:
        """Fetch the current certificate set and its Cache-Control lifetime."""
        try:
            async with asyncio.timeout(self._deadline_seconds):
                response = await self._client.get(self._url)
        except TimeoutError as exc:
            raise FetchError(
                f"Public key fetch exceeded {self._deadline_seconds}s deadline."
            ) from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Public key fetch failed: {exc}") from exc

        if response.status_code != 200:
            raise FetchError(
                f"Public key endpoint returned status {response.status_code}.",
                response.status_code,
            )

        certificates = self._certificate_mapping(response)
        return CertificateBundle(
            certificates=certificates,
            max_age_seconds=parse_max_age(response.headers.get("cache-control")),
        )

    async def aclose(self) -> None:
        """Close underlying HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> PublicKeyClient:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        del exc_type, exc, tb
        await self.aclose()

    @staticmethod
    def _certificate_mapping(response: httpx.Response) -> dict[str, str]:
        """Return response JSON as a kid to PEM string mapping."""
        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError("Public key endpoint returned invalid JSON.") from exc
        if not isinstance(payload, dict):
            raise DecodeError("Public key endpoint returned invalid JSON object.")
        for kid, certificate in payload.items():
            if not isinstance(certificate, str):
                raise DecodeError(f"Certificate for kid '{kid}' is not a string.")
        return payload
