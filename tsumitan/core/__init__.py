"""Identity provider key caching and ID token verification."""

from tsumitan.core.key_client import PublicKeyClient
from tsumitan.core.key_store import KeyStore
from tsumitan.core.tokens import TokenVerifier

__all__ = ["KeyStore", "PublicKeyClient", "TokenVerifier"]
