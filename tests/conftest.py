"""Shared fixtures: throwaway signing keys, certificates and ID tokens."""

from __future__ import annotations

import base64
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID
from jose import jwt

PROJECT_ID = "tsumitan-test"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"


@dataclass(frozen=True)
class SigningMaterial:
    """Private key for minting tokens plus the certificate the provider publishes."""

    private_key_pem: str
    certificate_pem: str


def _self_signed_certificate(private_key: Any, public_key: Any) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.system.test")])
    now = datetime.now(UTC)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM).decode("utf-8")


def generate_signing_material() -> SigningMaterial:
    """Create an RSA keypair wrapped in a self-signed X.509 certificate."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    return SigningMaterial(
        private_key_pem=private_pem,
        certificate_pem=_self_signed_certificate(private_key, private_key.public_key()),
    )


@pytest.fixture(scope="session")
def signing_material() -> SigningMaterial:
    return generate_signing_material()


@pytest.fixture(scope="session")
def other_signing_material() -> SigningMaterial:
    return generate_signing_material()


@pytest.fixture(scope="session")
def ec_certificate_pem() -> str:
    """Certificate carrying a non-RSA key; the key store must skip it."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return _self_signed_certificate(private_key, private_key.public_key())


def default_claims(now: float | None = None) -> dict[str, Any]:
    """Claims of a freshly issued, valid Firebase ID token."""
    issued_at = int(now if now is not None else time.time()) - 60
    return {
        "iss": ISSUER,
        "aud": PROJECT_ID,
        "sub": "user-1",
        "iat": issued_at,
        "exp": issued_at + 3600,
        "auth_time": issued_at - 60,
    }


TokenFactory = Callable[..., str]


@pytest.fixture
def make_token(signing_material: SigningMaterial) -> TokenFactory:
    """Build RS256 tokens; ``claims`` entries set to None are removed."""

    def factory(
        kid: str = "kid-A",
        material: SigningMaterial | None = None,
        now: float | None = None,
        **claims: Any,
    ) -> str:
        payload = default_claims(now)
        for name, value in claims.items():
            if value is None:
                payload.pop(name, None)
            else:
                payload[name] = value
        return jwt.encode(
            payload,
            (material or signing_material).private_key_pem,
            algorithm="RS256",
            headers={"kid": kid},
        )

    return factory


def unsigned_token(header: dict[str, Any], payload: dict[str, Any]) -> str:
    """Assemble a token with an empty signature segment."""

    def encode(segment: dict[str, Any]) -> str:
        raw = json.dumps(segment, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    return f"{encode(header)}.{encode(payload)}."


@pytest.fixture
def project_id() -> str:
    return PROJECT_ID


@pytest.fixture
def issuer() -> str:
    return ISSUER


@pytest.fixture
def build_unsigned_token() -> Callable[[dict[str, Any], dict[str, Any]], str]:
    return unsigned_token


@pytest.fixture
def valid_claims() -> Callable[..., dict[str, Any]]:
    return default_claims
