"""
Domain models for OAuth token persistence.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


class CredentialRecord(BaseModel):
    """The single persisted access/refresh token pair and its expiry."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def _normalize_expiry(cls, value: datetime) -> datetime:
        # Stored at millisecond precision, so keep the in-memory value identical.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        return value.replace(microsecond=value.microsecond - value.microsecond % 1000)

    @classmethod
    def issued(
        cls,
        *,
        access_token: str,
        refresh_token: str,
        expires_in: int,
        issued_at: datetime,
    ) -> "CredentialRecord":
        """Build a record whose expiry is derived from the write instant."""
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=issued_at + timedelta(seconds=expires_in),
        )

    def expires_within(self, window: timedelta, *, now: datetime) -> bool:
        """True when the access token expires inside ``window`` from ``now``."""
        return self.expires_at - now <= window

    def to_storage(self) -> Dict[str, Any]:
        """Serialize into the on-disk JSON layout (epoch milliseconds)."""
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": (self.expires_at - _EPOCH) // _MILLISECOND,
        }

    @classmethod
    def from_storage(cls, payload: Dict[str, Any]) -> "CredentialRecord":
        """Inverse of :meth:`to_storage`."""
        expires_at_ms = payload["expiresAt"]
        if isinstance(expires_at_ms, bool) or not isinstance(expires_at_ms, (int, float)):
            raise ValueError("expiresAt must be epoch milliseconds.")
        return cls(
            access_token=payload["accessToken"],
            refresh_token=payload["refreshToken"],
            expires_at=_EPOCH + timedelta(milliseconds=expires_at_ms),
        )


class TokenResponse(BaseModel):
    """Payload returned by the Dexcom token endpoint."""

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_in: int = Field(..., gt=0)
    token_type: Optional[str] = None


__all__ = ["CredentialRecord", "TokenResponse"]
