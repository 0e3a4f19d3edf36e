"""Pre-flight checks for a Dexcom OAuth gateway deployment.

Loads the gateway and MCP bridge settings from an env file and reports the
problems that otherwise only show up once traffic arrives: a Dexcom base URL
that cannot be used, a token file the gateway cannot write, a malformed
gateway URL for the bridge, or browser origins the bridge can never match.

Example usages::

    python -m scripts.check_env --env-file /opt/dexcom-oauth/.env

    # Treat warnings as failures, e.g. as a deploy gate.
    python -m scripts.check_env --env-file /opt/dexcom-oauth/.env --strict
"""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import ValidationError

from dexcom_oauth.core.config import AppSettings, McpSettings, _load_env_file

EXIT_OK = 0
EXIT_WARNINGS = 1
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5

ERROR = "error"
WARNING = "warning"

CALLBACK_PATH = "/auth/callback"


@dataclass(frozen=True)
class Finding:
    level: str
    setting: str
    message: str

    def render(self) -> str:
        return f"[{self.level}] {self.setting}: {self.message}"


def _http_url_problem(value: str) -> Optional[str]:
    """Describe why ``value`` is not an absolute http(s) URL, or return ``None``."""
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as exc:
        return f"{value!r} is not a valid URL ({exc})"
    if url.scheme not in ("http", "https") or not url.host:
        return f"{value!r} must be an absolute http(s) URL"
    return None


def check_dexcom(settings: AppSettings) -> List[Finding]:
    """Dexcom endpoints resolved from DEXCOM_ENV / DEXCOM_API_BASE_URL."""
    findings: List[Finding] = []
    base_url = settings.dexcom.base_url
    problem = _http_url_problem(base_url)
    if problem:
        findings.append(Finding(ERROR, "DEXCOM_API_BASE_URL", problem))
    elif httpx.URL(base_url).scheme != "https":
        findings.append(
            Finding(WARNING, "DEXCOM_API_BASE_URL", f"{base_url} does not use https")
        )

    callback_path = (settings.dexcom.redirect_uri.path or "/").rstrip("/")
    if callback_path != CALLBACK_PATH:
        findings.append(
            Finding(
                WARNING,
                "DEXCOM_REDIRECT_URI",
                f"Dexcom will redirect to {callback_path or '/'} but the gateway "
                f"serves the callback at {CALLBACK_PATH}",
            )
        )
    return findings


def check_token_storage(settings: AppSettings) -> List[Finding]:
    """The token file location must be creatable and writable by the gateway."""
    findings: List[Finding] = []
    path = settings.security.token_storage_path
    if path.is_dir():
        findings.append(
            Finding(ERROR, "TOKEN_STORAGE_PATH", f"{path} is a directory, not a file")
        )
    else:
        # The gateway creates missing parents, so the nearest existing one decides.
        existing = path.parent
        while not existing.exists() and existing != existing.parent:
            existing = existing.parent
        if not existing.is_dir():
            findings.append(
                Finding(ERROR, "TOKEN_STORAGE_PATH", f"{existing} is not a directory")
            )
        elif not os.access(existing, os.W_OK | os.X_OK):
            findings.append(
                Finding(ERROR, "TOKEN_STORAGE_PATH", f"{existing} is not writable")
            )

    if not settings.security.token_encryption_key:
        findings.append(
            Finding(
                WARNING,
                "TOKEN_ENCRYPTION_KEY",
                "not set; stored tokens will be encrypted with a key derived "
                "from DEXCOM_CLIENT_SECRET",
            )
        )
    return findings


def check_mcp(settings: McpSettings) -> List[Finding]:
    """Bridge settings: where the gateway lives and which origins may call it."""
    findings: List[Finding] = []
    problem = _http_url_problem(settings.oauth_server_url)
    if problem:
        findings.append(Finding(ERROR, "OAUTH_SERVER_URL", problem))

    for origin in settings.allowed_origins:
        problem = _http_url_problem(origin)
        if problem:
            findings.append(Finding(ERROR, "MCP_ALLOWED_ORIGINS", problem))
            continue
        url = httpx.URL(origin)
        if origin.endswith("/") or url.path not in ("", "/") or url.query:
            # Origin headers are scheme://host[:port]; anything more never matches.
            findings.append(
                Finding(
                    WARNING,
                    "MCP_ALLOWED_ORIGINS",
                    f"{origin!r} can never match a browser Origin header",
                )
            )
    return findings


def run_checks(app_settings: AppSettings, mcp_settings: McpSettings) -> List[Finding]:
    return [
        *check_dexcom(app_settings),
        *check_token_storage(app_settings),
        *check_mcp(mcp_settings),
    ]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check gateway and MCP bridge settings before deploying."
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when only warnings are found.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    _load_env_file(str(env_file))
    try:
        app_settings = AppSettings(_env_file=env_file)  # type: ignore[call-arg]
        mcp_settings = McpSettings(_env_file=env_file)  # type: ignore[call-arg]
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    findings = run_checks(app_settings, mcp_settings)
    for finding in findings:
        print(finding.render(), file=sys.stderr)

    if any(finding.level == ERROR for finding in findings):
        return EXIT_VALIDATION_ERROR
    if findings and args.strict:
        return EXIT_WARNINGS
    print(
        f"Configuration OK (Dexcom {app_settings.dexcom.environment}, "
        f"gateway {mcp_settings.oauth_server_url})."
    )
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
