"""
Dexcom OAuth utilities.

These helpers build the consent URL and talk to the Dexcom token endpoint.
"""

from __future__ import annotations

from typing import Dict
from urllib.parse import urlencode

import httpx
from fastapi import status
from pydantic import ValidationError

from dexcom_oauth.core.config import DexcomSettings
from dexcom_oauth.models.oauth import TokenResponse


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint rejects a request or answers garbage.

    The message may carry the vendor's response body; log it, never return it.
    """

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.status_code = status_code


class DexcomOAuthClient:
    """Build Dexcom authorization URLs and exchange codes for tokens."""

    def __init__(
        self,
        dexcom_settings: DexcomSettings,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._dexcom = dexcom_settings
        self._timeout = timeout
        self._transport = transport

    def build_authorization_url(self, state: str) -> str:
        """Construct the Dexcom consent URL."""
        params = {
            "client_id": self._dexcom.client_id,
            "redirect_uri": str(self._dexcom.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._dexcom.scopes),
            "state": state,
        }
        return f"{self._dexcom.authorization_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenResponse:
        """Exchange an authorization code for an access/refresh token pair."""
        payload = {
            "client_id": self._dexcom.client_id,
            "client_secret": self._dexcom.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": str(self._dexcom.redirect_uri),
        }
        token = await self._request_token(payload)
        if not token.refresh_token:
            raise OAuthTokenExchangeError(
                "Token payload returned without a refresh token."
            )
        return token

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """Obtain a fresh access token using a stored refresh token."""
        payload = {
            "client_id": self._dexcom.client_id,
            "client_secret": self._dexcom.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        return await self._request_token(payload)

    async def _request_token(self, payload: Dict[str, str]) -> TokenResponse:
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await client.post(
                self._dexcom.token_url,
                data=payload,
                headers={"Accept": "application/json"},
            )

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                response.text, status_code=response.status_code
            )

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from Dexcom.",
                status_code=response.status_code,
            ) from exc


__all__ = ["DexcomOAuthClient", "OAuthTokenExchangeError"]
