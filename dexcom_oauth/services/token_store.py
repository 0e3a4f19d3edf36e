"""
Encrypted file persistence for the single Dexcom credential record.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import stat
from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from dexcom_oauth.models.oauth import CredentialRecord
from dexcom_oauth.services.token_cipher import TokenCipherService, TokenDecryptionError
from dexcom_oauth.utils.dates import Clock, utcnow

logger = logging.getLogger(__name__)


class EncryptedTokenStore:
    """Persist the credential record as Fernet ciphertext in a single file.

    Every read goes back to disk; nothing is cached in memory. Unreadable state
    (wrong key, corrupted ciphertext, malformed payload) loads as ``None``.
    """

    DEFAULT_REFRESH_BUFFER = timedelta(minutes=5)

    def __init__(
        self,
        path: Path | str,
        token_cipher: TokenCipherService,
        *,
        refresh_buffer: timedelta = DEFAULT_REFRESH_BUFFER,
        clock: Clock = utcnow,
    ) -> None:
        self._path = Path(path)
        self._cipher = token_cipher
        self._refresh_buffer = refresh_buffer
        self._clock = clock
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, record: CredentialRecord) -> None:
        """Encrypt ``record`` and replace the backing file with it."""
        plaintext = json.dumps(record.to_storage(), separators=(",", ":"))
        ciphertext = self._cipher.encrypt(plaintext)
        async with self._write_lock:
            await asyncio.to_thread(self._write, ciphertext)
        logger.info("Stored Dexcom credentials", extra={"path": str(self._path)})

    async def load(self) -> Optional[CredentialRecord]:
        """Return the stored record, or ``None`` if absent or unreadable."""
        try:
            ciphertext = await asyncio.to_thread(self._read)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error(
                "Stored token file is unreadable: %s",
                type(exc).__name__,
                extra={"path": str(self._path)},
            )
            return None
        if ciphertext is None:
            return None

        try:
            plaintext = self._cipher.decrypt(ciphertext)
        except TokenDecryptionError:
            logger.error(
                "Failed to decrypt stored tokens; check TOKEN_ENCRYPTION_KEY",
                extra={"path": str(self._path)},
            )
            return None

        try:
            payload = json.loads(plaintext)
            return CredentialRecord.from_storage(payload)
        except (ValueError, KeyError, TypeError, ValidationError):
            logger.error(
                "Stored token payload is malformed", extra={"path": str(self._path)}
            )
            return None

    async def load_valid(self) -> Optional[CredentialRecord]:
        """Return the stored record only while it outlives the refresh buffer."""
        record = await self.load()
        if record is None:
            return None
        if record.expires_within(self._refresh_buffer, now=self._clock()):
            return None
        return record

    async def is_valid(self) -> bool:
        return await self.load_valid() is not None

    async def clear(self) -> None:
        """Remove the backing file; a missing file is not an error."""
        async with self._write_lock:
            removed = await asyncio.to_thread(self._unlink)
        if removed:
            logger.info("Cleared stored Dexcom credentials")

    def _read(self) -> Optional[str]:
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, ciphertext: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        tmp_path.write_text(ciphertext, encoding="utf-8")
        if os.name != "nt":
            tmp_path.chmod(stat.S_IRUSR | stat.S_IWUSR)
        os.replace(tmp_path, self._path)

    def _unlink(self) -> bool:
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        return True


__all__ = ["EncryptedTokenStore"]
