"""Operational checks for the proxy's environment and stored credential.

Commands:

``check``
    Instantiate ``AppSettings`` from the given ``.env`` file, surfacing missing
    or malformed entries before the service starts failing.
``record`` / ``verify``
    Store, then later compare, a SHA256 checksum of the ``.env`` file so
    unexpected edits (for example, a rotated Webflow client secret that would
    make stored tokens undecryptable) are detected.
``credential``
    Report whether a Webflow credential is stored and whether it is still
    considered valid, without printing any token.

Example usages::

    python -m scripts.check_env record --env-file /srv/proxy/.env \
        --hash-file /srv/proxy/.env.sha256
    python -m scripts.check_env credential --env-file /srv/proxy/.env
"""

from __future__ import annotations

import argparse
import asyncio
import hashlib
import sys
from datetime import timedelta
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from webflow_proxy.clients import SQLiteStore, WebflowOAuthClient
from webflow_proxy.core.config import AppSettings, _load_env_file
from webflow_proxy.core.errors import CredentialError
from webflow_proxy.models.credentials import CredentialState
from webflow_proxy.services import CredentialManager, TokenCipherService

EXIT_OK = 0
EXIT_NOT_AUTHORIZED = 1
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _compute_hash(env_file: Path) -> str:
    """Return the SHA256 checksum for the target environment file."""
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Ensure required settings can be loaded from the supplied env file."""
    _load_env_file(str(env_file))
    settings = AppSettings()  # type: ignore[call-arg]
    if settings.environment == "production" and not settings.security.token_encryption_secret:
        print(
            "TOKEN_ENCRYPTION_SECRET is unset; stored tokens are keyed on the "
            "Webflow client secret and become unreadable if it is rotated.",
            file=sys.stderr,
        )
    return settings


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    """Persist the current checksum to ``hash_file``."""
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Investigate recent changes before restarting services.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _report_credential(settings: AppSettings) -> int:
    """Print the lifecycle state of the stored Webflow credential."""
    manager = CredentialManager(
        store=SQLiteStore(settings.storage.db_path),
        oauth_client=WebflowOAuthClient(settings.webflow, settings.oauth),
        token_cipher=TokenCipherService(
            secret=settings.security.token_encryption_secret or settings.webflow.client_secret
        ),
        credential_key=settings.oauth.credential_key,
        refresh_skew=timedelta(seconds=settings.oauth.refresh_skew_seconds),
    )
    try:
        state = asyncio.run(manager.state())
    except CredentialError as exc:
        print(f"Stored credential unusable: {exc}", file=sys.stderr)
        return EXIT_NOT_AUTHORIZED

    print(f"Credential state: {state.value}")
    if state is CredentialState.UNAUTHENTICATED:
        return EXIT_NOT_AUTHORIZED
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate proxy settings, detect .env drift and inspect the stored credential."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common_arguments(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    for name, help_text in (
        ("record", "Validate settings and store the checksum baseline."),
        ("verify", "Validate settings and compare the checksum with the baseline."),
    ):
        checksum_parser = subparsers.add_parser(name, help=help_text)
        add_common_arguments(checksum_parser)
        checksum_parser.add_argument(
            "--hash-file",
            required=True,
            type=Path,
            help="Location of the checksum baseline.",
        )

    add_common_arguments(
        subparsers.add_parser("check", help="Validate settings without touching any checksum files.")
    )
    add_common_arguments(
        subparsers.add_parser("credential", help="Report the state of the stored Webflow credential.")
    )
    return parser


def _ensure_env_file(env_file: Path) -> None:
    if not env_file.exists():
        raise FileNotFoundError(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool."
        )


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    env_file: Path = args.env_file

    try:
        _ensure_env_file(env_file)
        settings = _load_settings(env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
        "credential": lambda: _report_credential(settings),
    }
    return handlers[command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
