"""In-memory registry of one-time OAuth ``state`` values."""

from __future__ import annotations

import logging
import secrets
from collections import OrderedDict
from datetime import datetime, timedelta

from dexcom_oauth.utils.dates import Clock, utcnow

logger = logging.getLogger(__name__)


class AuthorizationStateRegistry:
    """Issue and consume CSRF state tokens bound to a short deadline.

    Entries live only in this process. Every lookup is destructive, so a state
    can be redeemed at most once whatever the outcome.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(minutes=10),
        max_pending: int = 1000,
        clock: Clock = utcnow,
    ) -> None:
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1.")
        self._ttl = ttl
        self._max_pending = max_pending
        self._clock = clock
        # Insertion order doubles as issuance order for FIFO eviction.
        self._deadlines: OrderedDict[str, datetime] = OrderedDict()

    def __len__(self) -> int:
        return len(self._deadlines)

    def __contains__(self, token: object) -> bool:
        return token in self._deadlines

    def issue(self) -> str:
        """Create a new 128-bit state token and record its deadline."""
        self.sweep()
        while len(self._deadlines) >= self._max_pending:
            self._deadlines.popitem(last=False)
            logger.warning("Evicted oldest pending OAuth state; registry is full")
        token = secrets.token_hex(16)
        self._deadlines[token] = self._clock() + self._ttl
        return token

    def validate(self, token: str) -> bool:
        """Consume ``token``; true only if it was pending and unexpired."""
        deadline = self._deadlines.pop(token, None)
        if deadline is None:
            return False
        if self._clock() > deadline:
            logger.info("Rejected expired OAuth state")
            return False
        return True

    def sweep(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [token for token, deadline in self._deadlines.items() if now > deadline]
        for token in expired:
            del self._deadlines[token]
        return len(expired)


__all__ = ["AuthorizationStateRegistry"]
