"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


_DEFAULT_ENV_VARS: dict[str, str] = {
    "DEXCOM_CLIENT_ID": "test-client-id",
    "DEXCOM_CLIENT_SECRET": "test-client-secret",
    "DEXCOM_REDIRECT_URI": "http://localhost:3001/auth/callback",
    "DEXCOM_ENV": "sandbox",
    "TOKEN_ENCRYPTION_KEY": "test-encryption-key",
    "TOKEN_STORAGE_PATH": str(Path(tempfile.gettempdir()) / "dexcom-oauth-tests" / "tokens.enc"),
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)
