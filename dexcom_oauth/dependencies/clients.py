"""
Construction of the gateway's long-lived components and their FastAPI dependencies.

Components are built once by :func:`build_container` when the application is
created and handed to request handlers through ``app.state``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request

from dexcom_oauth.clients import DexcomAPIClient, DexcomOAuthClient
from dexcom_oauth.core.config import AppSettings
from dexcom_oauth.services import (
    AuthorizationStateRegistry,
    EncryptedTokenStore,
    MockGlucoseSource,
    OAuthFlowManager,
    TokenCipherService,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Process-scoped components shared by every request."""

    settings: AppSettings
    token_store: EncryptedTokenStore
    state_registry: AuthorizationStateRegistry
    oauth_manager: OAuthFlowManager
    dexcom_client: DexcomAPIClient

    async def aclose(self) -> None:
        await self.dexcom_client.aclose()


def build_token_cipher(settings: AppSettings) -> TokenCipherService:
    """Symmetric encryption helper for token storage."""
    secret = settings.security.token_encryption_key
    if not secret:
        logger.warning(
            "TOKEN_ENCRYPTION_KEY not set; deriving the token key from the client secret"
        )
        secret = settings.dexcom.client_secret
    return TokenCipherService(secret=secret)


def build_container(settings: AppSettings) -> ServiceContainer:
    """Wire the token lifecycle components and the Dexcom data client."""
    token_store = EncryptedTokenStore(
        settings.security.token_storage_path,
        build_token_cipher(settings),
        refresh_buffer=timedelta(seconds=settings.oauth.refresh_buffer_seconds),
    )
    state_registry = AuthorizationStateRegistry(
        ttl=timedelta(seconds=settings.oauth.state_ttl_seconds),
        max_pending=settings.oauth.state_max_pending,
    )
    oauth_manager = OAuthFlowManager(
        DexcomOAuthClient(settings.dexcom, timeout=settings.oauth.token_request_timeout),
        token_store,
        state_registry,
        mock_mode=settings.mock_mode,
    )
    dexcom_client = DexcomAPIClient(
        settings.dexcom,
        oauth_manager,
        timeout=settings.oauth.api_request_timeout,
        mock_source=MockGlucoseSource() if settings.mock_mode else None,
    )
    return ServiceContainer(
        settings=settings,
        token_store=token_store,
        state_registry=state_registry,
        oauth_manager=oauth_manager,
        dexcom_client=dexcom_client,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_oauth_manager(request: Request) -> OAuthFlowManager:
    """FastAPI dependency returning the OAuth flow manager."""
    return get_container(request).oauth_manager


def get_dexcom_client(request: Request) -> DexcomAPIClient:
    """FastAPI dependency returning the authenticated Dexcom client."""
    return get_container(request).dexcom_client


__all__ = [
    "ServiceContainer",
    "build_container",
    "build_token_cipher",
    "get_container",
    "get_dexcom_client",
    "get_oauth_manager",
]
