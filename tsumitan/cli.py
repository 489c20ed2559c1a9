"""CLI entrypoints for operational checks against the identity provider."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from collections.abc import Sequence

from pydantic import ValidationError

from tsumitan.config import KeyFetchSettings
from tsumitan.core.errors import KeyStoreError
from tsumitan.core.key_client import PublicKeyClient
from tsumitan.core.key_store import KeyStore


async def _run_fetch_keys(store: KeyStore) -> int:
    """Fetch provider keys once and print what was accepted."""
    try:
        await store.refresh()
    except KeyStoreError as exc:
        print(json.dumps({"error": exc.code, "detail": exc.detail}), file=sys.stderr)
        return 1
    finally:
        await store.aclose()

    print(
        json.dumps(
            {
                "key_ids": store.known_key_ids(),
                "fresh_for_seconds": round(store.expires_at - time.monotonic()),
            }
        )
    )
    return 0


def _build_store(url: str | None, timeout: float | None) -> KeyStore:
    settings = KeyFetchSettings()
    client = PublicKeyClient(
        url=url or str(settings.firebase.public_keys_url),
        deadline_seconds=timeout or settings.firebase.fetch_timeout_seconds,
    )
    return KeyStore(client=client, ttl_seconds=settings.firebase.cache_ttl_seconds)


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="python -m tsumitan.cli")
    subcommands = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subcommands.add_parser("fetch-keys")
    fetch_parser.add_argument("--url", default=None, help="Override FIREBASE__PUBLIC_KEYS_URL.")
    fetch_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Override FIREBASE__FETCH_TIMEOUT_SECONDS for this run.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "fetch-keys":
        try:
            store = _build_store(url=args.url, timeout=args.timeout)
        except ValidationError as exc:
            invalid = sorted(".".join(str(part) for part in error["loc"]) for error in exc.errors())
            print(json.dumps({"error": "invalid_settings", "detail": invalid}), file=sys.stderr)
            return 2
        return asyncio.run(_run_fetch_keys(store))
    parser.error("Unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
