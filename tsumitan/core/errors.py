"""Exception hierarchy for public key retrieval and token verification."""

from __future__ import annotations


class KeyStoreError(Exception):
    """Base class for failures while resolving identity provider keys."""

    code = "key_store_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class FetchError(KeyStoreError):
    """Raised when the key endpoint is unreachable or answers with a non-200 status."""

    code = "fetch_error"

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        """Initialize with optional HTTP status code context."""
        super().__init__(detail)
        self.status_code = status_code


class DecodeError(KeyStoreError):
    """Raised when the key endpoint returns a body that is not a kid to PEM mapping."""

    code = "decode_error"


class NoValidKeys(KeyStoreError):
    """Raised when a non-empty key response yields no usable RSA key."""

    code = "no_valid_keys"


class KeyNotFound(KeyStoreError):
    """Raised when a freshly refreshed key set lacks the requested kid."""

    code = "key_not_found"

    def __init__(self, kid: str) -> None:
        super().__init__(f"Public key for kid '{kid}' not found.")
        self.kid = kid


class TokenVerificationError(Exception):
    """Raised when a bearer token is rejected.

    ``detail`` is meant for server-side logs only; clients always receive a
    generic unauthorized response.
    """

    code = "invalid_token"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class MalformedToken(TokenVerificationError):
    code = "malformed_token"


class UnsupportedAlgorithm(TokenVerificationError):
    code = "unsupported_algorithm"


class KeyResolutionFailed(TokenVerificationError):
    code = "key_resolution_failed"


class SignatureInvalid(TokenVerificationError):
    code = "signature_invalid"


class TokenExpired(TokenVerificationError):
    code = "token_expired"


class TokenNotYetValid(TokenVerificationError):
    code = "token_not_yet_valid"


class ValidityWindowTooLong(TokenVerificationError):
    code = "validity_window_too_long"


class InvalidIssuer(TokenVerificationError):
    code = "invalid_issuer"


class InvalidAudience(TokenVerificationError):
    code = "invalid_audience"


class MissingSubject(TokenVerificationError):
    code = "missing_subject"


class InvalidAuthTime(TokenVerificationError):
    code = "invalid_auth_time"
