"""Expose constructed client wrappers."""

from .dexcom_api import DexcomAPIClient, DexcomAPIError, DexcomAuthError
from .dexcom_auth import DexcomOAuthClient, OAuthTokenExchangeError

__all__ = [
    "DexcomAPIClient",
    "DexcomAPIError",
    "DexcomAuthError",
    "DexcomOAuthClient",
    "OAuthTokenExchangeError",
]
