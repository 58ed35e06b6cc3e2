"""Tests for the environment drift and credential inspection script."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from scripts import check_env
from webflow_proxy.clients.sqlite_store import SQLiteStore
from webflow_proxy.models.credentials import TokenGrant
from webflow_proxy.services.credential_manager import CredentialManager
from webflow_proxy.services.token_cipher import TokenCipherService

REQUIRED_ENV_KEYS = [
    "WEBFLOW_CLIENT_ID",
    "WEBFLOW_CLIENT_SECRET",
    "WEBFLOW_REDIRECT_URI",
    "COLLECTION_ID",
    "TOKEN_ENCRYPTION_SECRET",
    "CREDENTIAL_DB_PATH",
]


def _write_env(env_path: Path, **values: str) -> None:
    contents = "\n".join(f"{key}={value}" for key, value in values.items())
    env_path.write_text(contents + "\n", encoding="utf-8")


def _clear_required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in REQUIRED_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.mark.parametrize("command", ["record", "verify", "check", "credential"])
def test_main_requires_existing_env_file(tmp_path: Path, command: str) -> None:
    env_file = tmp_path / ".missing-env"
    hash_file = tmp_path / ".env.sha256"

    argv = [command, "--env-file", str(env_file)]
    if command in ("record", "verify"):
        argv.extend(["--hash-file", str(hash_file)])

    exit_code = check_env.main(argv)
    assert exit_code == check_env.EXIT_RUNTIME_ERROR


def test_record_and_verify_detects_mismatched_checksum(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    hash_file = tmp_path / ".env.sha256"

    _clear_required_env(monkeypatch)
    _write_env(
        env_file,
        WEBFLOW_CLIENT_ID="abc",
        WEBFLOW_CLIENT_SECRET="secret",
        COLLECTION_ID="collection",
    )

    exit_code = check_env.main(
        ["record", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_OK
    assert hash_file.read_text(encoding="utf-8").strip()

    _clear_required_env(monkeypatch)
    exit_code = check_env.main(
        ["verify", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_OK

    _write_env(
        env_file,
        WEBFLOW_CLIENT_ID="abc",
        WEBFLOW_CLIENT_SECRET="rotated",
        COLLECTION_ID="collection",
    )

    _clear_required_env(monkeypatch)
    exit_code = check_env.main(
        ["verify", "--env-file", str(env_file), "--hash-file", str(hash_file)]
    )
    assert exit_code == check_env.EXIT_CHECKSUM_ERROR


def test_validation_failure_for_missing_required_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"

    _clear_required_env(monkeypatch)
    _write_env(env_file, WEBFLOW_CLIENT_ID="abc", COLLECTION_ID="collection")

    exit_code = check_env.main(["check", "--env-file", str(env_file)])
    assert exit_code == check_env.EXIT_VALIDATION_ERROR


def test_credential_command_reports_stored_state(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, token_endpoint, capsys
) -> None:
    env_file = tmp_path / ".env"
    db_path = tmp_path / "credentials.db"

    _clear_required_env(monkeypatch)
    _write_env(
        env_file,
        WEBFLOW_CLIENT_ID="abc",
        WEBFLOW_CLIENT_SECRET="secret",
        COLLECTION_ID="collection",
        TOKEN_ENCRYPTION_SECRET="at-rest-secret",
        CREDENTIAL_DB_PATH=str(db_path),
    )

    exit_code = check_env.main(["credential", "--env-file", str(env_file)])
    assert exit_code == check_env.EXIT_NOT_AUTHORIZED
    assert "unauthenticated" in capsys.readouterr().out

    token_endpoint.exchange_results.append(TokenGrant(access_token="T1", expires_in=3600))
    manager = CredentialManager(
        store=SQLiteStore(str(db_path)),
        oauth_client=token_endpoint,
        token_cipher=TokenCipherService(secret="at-rest-secret"),
    )
    asyncio.run(manager.complete_authorization("abc123"))

    _clear_required_env(monkeypatch)
    exit_code = check_env.main(["credential", "--env-file", str(env_file)])
    output = capsys.readouterr().out
    assert exit_code == check_env.EXIT_OK
    assert "authorized" in output
    assert "T1" not in output
