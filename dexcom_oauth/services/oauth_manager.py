"""
Authorization-code flow and token lifecycle for the Dexcom integration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from dexcom_oauth.clients.dexcom_auth import DexcomOAuthClient, OAuthTokenExchangeError
from dexcom_oauth.core.errors import (
    NoRefreshTokenError,
    TokenExchangeError,
    TokenRefreshError,
)
from dexcom_oauth.models.oauth import CredentialRecord
from dexcom_oauth.services.state_registry import AuthorizationStateRegistry
from dexcom_oauth.services.token_store import EncryptedTokenStore
from dexcom_oauth.utils.dates import Clock, utcnow

logger = logging.getLogger(__name__)

MOCK_ACCESS_TOKEN = "mock-token"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Consent URL plus the raw state embedded in it."""

    url: str
    state: str


class OAuthFlowManager:
    """Drives the credential lifecycle on top of the encrypted token store.

    Unauthenticated -> Authenticated -> Expired -> Authenticated (refreshed),
    and back to Unauthenticated on logout.
    """

    def __init__(
        self,
        oauth_client: DexcomOAuthClient,
        token_store: EncryptedTokenStore,
        state_registry: AuthorizationStateRegistry,
        *,
        mock_mode: bool = False,
        clock: Clock = utcnow,
    ) -> None:
        self._oauth = oauth_client
        self._store = token_store
        self._states = state_registry
        self._mock_mode = mock_mode
        self._clock = clock

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def get_authorization_url(self) -> AuthorizationRequest:
        state = self._states.issue()
        return AuthorizationRequest(
            url=self._oauth.build_authorization_url(state=state), state=state
        )

    def validate_state(self, state: str) -> bool:
        return self._states.validate(state)

    async def exchange_code_for_token(self, code: str) -> None:
        """Redeem an authorization code and persist the resulting credentials."""
        try:
            issued_at = self._clock()
            token = await self._oauth.exchange_authorization_code(code)
            record = CredentialRecord.issued(
                access_token=token.access_token,
                refresh_token=token.refresh_token or "",
                expires_in=token.expires_in,
                issued_at=issued_at,
            )
            await self._store.save(record)
        except OAuthTokenExchangeError as exc:
            logger.error(
                "Dexcom rejected authorization code exchange: %s",
                exc,
                extra={"status_code": exc.status_code},
            )
            raise TokenExchangeError(
                "Failed to exchange authorization code for token"
            ) from exc
        except (httpx.HTTPError, OSError, ValueError) as exc:
            logger.error("Authorization code exchange failed: %s", type(exc).__name__)
            raise TokenExchangeError(
                "Failed to exchange authorization code for token"
            ) from exc

        logger.info("OAuth tokens obtained and saved")

    async def refresh_access_token(self) -> str:
        """Renew the access token, returning the new value.

        On failure the stored record is left exactly as it was.
        """
        current = await self._store.load()
        if current is None or not current.refresh_token:
            raise NoRefreshTokenError("No refresh token available")

        try:
            issued_at = self._clock()
            token = await self._oauth.refresh_token(current.refresh_token)
            record = CredentialRecord.issued(
                access_token=token.access_token,
                # Dexcom may omit a rotated refresh token; keep the previous one.
                refresh_token=token.refresh_token or current.refresh_token,
                expires_in=token.expires_in,
                issued_at=issued_at,
            )
            await self._store.save(record)
        except OAuthTokenExchangeError as exc:
            logger.error(
                "Dexcom rejected token refresh: %s",
                exc,
                extra={"status_code": exc.status_code},
            )
            raise TokenRefreshError("Failed to refresh access token") from exc
        except (httpx.HTTPError, OSError, ValueError) as exc:
            logger.error("Token refresh failed: %s", type(exc).__name__)
            raise TokenRefreshError("Failed to refresh access token") from exc

        logger.info("Access token refreshed")
        return record.access_token

    async def get_valid_access_token(self) -> Optional[str]:
        """Return a usable access token, refreshing once if needed.

        ``None`` means no token can be had; this never raises.
        """
        if self._mock_mode:
            return MOCK_ACCESS_TOKEN

        record = await self._store.load_valid()
        if record is not None:
            return record.access_token

        try:
            return await self.refresh_access_token()
        except TokenRefreshError as exc:
            logger.warning("Could not obtain a valid access token: %s", exc)
            return None

    async def is_authenticated(self) -> bool:
        """True when a credential record exists, expired or not."""
        if self._mock_mode:
            return True
        return await self._store.load() is not None

    async def logout(self) -> None:
        await self._store.clear()


__all__ = [
    "AuthorizationRequest",
    "MOCK_ACCESS_TOKEN",
    "NoRefreshTokenError",
    "OAuthFlowManager",
    "TokenExchangeError",
    "TokenRefreshError",
]
