"""Date helpers shared by the token lifecycle and the Dexcom data client."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]

_DEXCOM_FORMAT = "%Y-%m-%dT%H:%M:%S"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_date_for_dexcom(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS`` in UTC.

    The Dexcom v3 API rejects fractional seconds and offset suffixes.
    Naive datetimes are taken to already be UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(_DEXCOM_FORMAT)


def parse_iso_datetime(raw: str) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing ``Z``.

    Raises ``ValueError`` for anything that is not a timestamp.
    """
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["Clock", "format_date_for_dexcom", "parse_iso_datetime", "utcnow"]
