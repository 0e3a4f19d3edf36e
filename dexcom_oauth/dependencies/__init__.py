"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    ServiceContainer,
    build_container,
    build_token_cipher,
    get_container,
    get_dexcom_client,
    get_oauth_manager,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "ServiceContainer",
    "SettingsDependency",
    "build_container",
    "build_token_cipher",
    "get_app_settings",
    "get_container",
    "get_dexcom_client",
    "get_oauth_manager",
]
