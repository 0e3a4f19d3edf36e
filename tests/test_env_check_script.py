"""Tests for the deployment configuration checker."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from scripts import check_env

CHECKED_KEYS = [
    "DEXCOM_CLIENT_ID",
    "DEXCOM_CLIENT_SECRET",
    "DEXCOM_REDIRECT_URI",
    "DEXCOM_ENV",
    "DEXCOM_API_BASE_URL",
    "TOKEN_ENCRYPTION_KEY",
    "TOKEN_STORAGE_PATH",
    "OAUTH_SERVER_URL",
    "MCP_ALLOWED_ORIGINS",
]


@pytest.fixture
def write_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Write an env file whose values are loaded into a clean environment."""
    for key in CHECKED_KEYS:
        # Registering then deleting makes monkeypatch undo whatever the loader sets.
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)

    def _write(**overrides: Optional[str]) -> Path:
        values = {
            "DEXCOM_CLIENT_ID": "abc",
            "DEXCOM_CLIENT_SECRET": "secret",
            "DEXCOM_REDIRECT_URI": "https://gateway.example.com/auth/callback",
            "TOKEN_ENCRYPTION_KEY": "key-material",
            "TOKEN_STORAGE_PATH": str(tmp_path / "data" / "tokens.enc"),
            "OAUTH_SERVER_URL": "http://localhost:3001",
        }
        values.update(overrides)
        env_path = tmp_path / ".env"
        contents = "\n".join(
            f"{key}={value}" for key, value in values.items() if value is not None
        )
        env_path.write_text(contents + "\n", encoding="utf-8")
        return env_path

    return _write


def test_main_requires_existing_env_file(tmp_path: Path) -> None:
    exit_code = check_env.main(["--env-file", str(tmp_path / ".missing-env")])

    assert exit_code == check_env.EXIT_RUNTIME_ERROR


def test_valid_configuration_passes(write_env, capsys) -> None:
    exit_code = check_env.main(["--env-file", str(write_env()), "--strict"])

    captured = capsys.readouterr()
    assert exit_code == check_env.EXIT_OK
    assert captured.err == ""
    assert "Dexcom sandbox" in captured.out


def test_missing_client_secret_fails_validation(write_env) -> None:
    env_file = write_env(DEXCOM_CLIENT_SECRET=None)

    assert check_env.main(["--env-file", str(env_file)]) == check_env.EXIT_VALIDATION_ERROR


def test_unknown_dexcom_env_fails_validation(write_env) -> None:
    env_file = write_env(DEXCOM_ENV="staging")

    assert check_env.main(["--env-file", str(env_file)]) == check_env.EXIT_VALIDATION_ERROR


def test_base_url_override_must_be_http_url(write_env, capsys) -> None:
    env_file = write_env(DEXCOM_API_BASE_URL="sandbox-api.dexcom.com")

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert "[error] DEXCOM_API_BASE_URL" in capsys.readouterr().err


def test_plain_http_base_url_only_warns(write_env, capsys) -> None:
    env_file = write_env(DEXCOM_API_BASE_URL="http://localhost:9000")

    assert check_env.main(["--env-file", str(env_file)]) == check_env.EXIT_OK
    assert "[warning] DEXCOM_API_BASE_URL" in capsys.readouterr().err
    assert check_env.main(["--env-file", str(env_file), "--strict"]) == (
        check_env.EXIT_WARNINGS
    )


def test_redirect_uri_must_reach_callback_route(write_env, capsys) -> None:
    env_file = write_env(DEXCOM_REDIRECT_URI="https://gateway.example.com/oauth/done")

    check_env.main(["--env-file", str(env_file)])

    assert "[warning] DEXCOM_REDIRECT_URI" in capsys.readouterr().err


def test_token_path_that_is_a_directory_is_an_error(
    write_env, tmp_path: Path, capsys
) -> None:
    storage = tmp_path / "tokens-dir"
    storage.mkdir()
    env_file = write_env(TOKEN_STORAGE_PATH=str(storage))

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert "is a directory" in capsys.readouterr().err


def test_token_path_under_a_file_is_an_error(write_env, tmp_path: Path, capsys) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    env_file = write_env(TOKEN_STORAGE_PATH=str(blocker / "nested" / "tokens.enc"))

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert f"{blocker} is not a directory" in capsys.readouterr().err


def test_missing_encryption_key_only_warns(write_env, capsys) -> None:
    env_file = write_env(TOKEN_ENCRYPTION_KEY="")

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_OK
    assert "TOKEN_ENCRYPTION_KEY" in capsys.readouterr().err


def test_malformed_gateway_url_is_an_error(write_env, capsys) -> None:
    env_file = write_env(OAUTH_SERVER_URL="localhost:3001")

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert "[error] OAUTH_SERVER_URL" in capsys.readouterr().err


def test_origin_with_path_is_flagged(write_env, capsys) -> None:
    env_file = write_env(
        MCP_ALLOWED_ORIGINS="https://chatgpt.com,https://claude.ai/app"
    )

    exit_code = check_env.main(["--env-file", str(env_file), "--strict"])

    err = capsys.readouterr().err
    assert exit_code == check_env.EXIT_WARNINGS
    assert "https://claude.ai/app" in err
    assert "https://chatgpt.com'" not in err
