"""In-process cache of the identity provider's rotating RSA signing keys."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from tsumitan.core.errors import KeyNotFound, KeyStoreError, NoValidKeys
from tsumitan.core.key_client import PublicKeyClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _KeySnapshot:
    """Immutable key set and the monotonic instant it stops being trusted."""

    keys: Mapping[str, RSAPublicKey] = field(default_factory=lambda: MappingProxyType({}))
    expires_at: float = 0.0


def parse_public_key(certificate_pem: str) -> RSAPublicKey:
    """Extract the RSA public key from a PEM encoded X.509 certificate."""
    certificate = x509.load_pem_x509_certificate(certificate_pem.encode("utf-8"))
    public_key = certificate.public_key()
    if not isinstance(public_key, RSAPublicKey):
        raise ValueError("Certificate public key is not RSA.")
    return public_key


class KeyStore:
    """Resolve signing keys by kid, refreshing from the provider when stale.

    Lookups read the current snapshot without locking, so any number of
    concurrent verifications proceed in parallel. A refresh holds the lock for
    the fetch plus parsing and then swaps in a new snapshot in one assignment;
    readers see either the old set or the new one, never a mix.
    """

    def __init__(
        self,
        client: PublicKeyClient,
        ttl_seconds: int | None = None,
        now: Callable[[], float] | None = None,
    ) -> None:
        """Create store; ``ttl_seconds`` overrides the provider's Cache-Control max-age."""
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._now = now or time.monotonic
        self._snapshot = _KeySnapshot()
        self._lock = asyncio.Lock()

    @property
    def expires_at(self) -> float:
        return self._snapshot.expires_at

    def known_key_ids(self) -> list[str]:
        """Return kids currently cached, fresh or not."""
        return sorted(self._snapshot.keys)

    def _fresh_key(self, kid: str) -> RSAPublicKey | None:
        snapshot = self._snapshot
        if self._now() >= snapshot.expires_at:
            return None
        return snapshot.keys.get(kid)

    async def resolve_key(self, kid: str) -> RSAPublicKey:
        """Return the public key for ``kid``, refreshing at most once."""
        key = self._fresh_key(kid)
        if key is not None:
            return key

        async with self._lock:
            # Another task may have refreshed while this one waited.
            key = self._fresh_key(kid)
            if key is not None:
                return key
            snapshot = await self._refresh_locked()

        key = snapshot.keys.get(kid)
        if key is None:
            raise KeyNotFound(kid)
        return key

    async def refresh(self) -> None:
        """Force a fetch of the provider key set."""
        async with self._lock:
            await self._refresh_locked()

    async def _refresh_locked(self) -> _KeySnapshot:
        try:
            bundle = await self._client.fetch_certificates()
        except KeyStoreError as exc:
            logger.warning(
                "public_keys_fetch_failed",
                url=self._client.url,
                error=str(exc),
                cached_keys=len(self._snapshot.keys),
            )
            raise

        keys: dict[str, RSAPublicKey] = {}
        for kid, certificate_pem in bundle.certificates.items():
            try:
                keys[kid] = parse_public_key(certificate_pem)
            except (ValueError, UnsupportedAlgorithm) as exc:
                logger.warning("public_key_skipped", kid=kid, error=str(exc))

        if bundle.certificates and not keys:
            raise NoValidKeys(
                f"None of the {len(bundle.certificates)} provider certificates could be parsed."
            )

        ttl_seconds = self._ttl_seconds if self._ttl_seconds is not None else bundle.max_age_seconds
        snapshot = _KeySnapshot(
            keys=MappingProxyType(keys),
            expires_at=self._now() + ttl_seconds,
        )
        self._snapshot = snapshot
        logger.info("public_keys_refreshed", key_count=len(keys), ttl_seconds=ttl_seconds)
        return snapshot

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        await self._client.aclose()
