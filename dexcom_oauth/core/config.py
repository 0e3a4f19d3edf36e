"""
Application configuration models and helpers.

Centralizes settings management so both the OAuth gateway and the MCP bridge
share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


_DEXCOM_BASE_URLS = {
    "sandbox": "https://sandbox-api.dexcom.com",
    "production": "https://api.dexcom.com",
    "production_eu": "https://api.dexcom.eu",
    "production_jp": "https://api.dexcom.jp",
}

OFFLINE_ACCESS_SCOPE = "offline_access"


class DexcomSettings(BaseSettings):
    """Configuration required for interacting with the Dexcom API."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    client_id: str = Field(..., validation_alias="DEXCOM_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="DEXCOM_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(
        "http://localhost:3001/auth/callback",
        validation_alias="DEXCOM_REDIRECT_URI",
    )
    environment: Literal["sandbox", "production", "production_eu", "production_jp"] = (
        Field("sandbox", validation_alias="DEXCOM_ENV")
    )
    api_base_url: Optional[str] = Field(
        None,
        validation_alias="DEXCOM_API_BASE_URL",
        description="Overrides the base URL derived from DEXCOM_ENV.",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (OFFLINE_ACCESS_SCOPE,),
        validation_alias="DEXCOM_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)

    @field_validator("scopes")
    @classmethod
    def _require_offline_access(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Refresh tokens are only issued when offline access is requested."""
        if OFFLINE_ACCESS_SCOPE in value:
            return value
        return value + (OFFLINE_ACCESS_SCOPE,)

    @property
    def base_url(self) -> str:
        if self.api_base_url:
            return self.api_base_url.rstrip("/")
        return _DEXCOM_BASE_URLS[self.environment]

    @property
    def authorization_url(self) -> str:
        return f"{self.base_url}/v2/oauth2/login"

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/v2/oauth2/token"


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    token_encryption_key: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_KEY",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    token_storage_path: Path = Field(
        Path("./tokens.enc"), validation_alias="TOKEN_STORAGE_PATH"
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    state_ttl_seconds: int = Field(600, validation_alias="OAUTH_STATE_TTL", gt=0)
    state_max_pending: int = Field(
        1000, validation_alias="OAUTH_STATE_MAX_PENDING", gt=0
    )
    refresh_buffer_seconds: int = Field(
        300, validation_alias="TOKEN_REFRESH_BUFFER", ge=0
    )
    token_request_timeout: float = Field(10.0, validation_alias="OAUTH_HTTP_TIMEOUT")
    api_request_timeout: float = Field(30.0, validation_alias="DEXCOM_HTTP_TIMEOUT")


class AppSettings(BaseSettings):
    """Root settings object for the OAuth gateway."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    host: str = Field("127.0.0.1", validation_alias="HOST")
    port: int = Field(3001, validation_alias="PORT")
    mock_mode: bool = Field(
        False,
        validation_alias="MOCK_MODE",
        description="Serve synthetic glucose data and skip the token store.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    dexcom: DexcomSettings = Field(default_factory=DexcomSettings)


class McpSettings(BaseSettings):
    """Settings for the MCP bridge process."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    oauth_server_url: str = Field(
        "http://localhost:3001", validation_alias="OAUTH_SERVER_URL"
    )
    host: str = Field("127.0.0.1", validation_alias="MCP_HOST")
    port: int = Field(3002, validation_alias="MCP_PORT")
    log_level: str = Field("INFO", validation_alias="MCP_LOG_LEVEL")
    request_timeout: float = Field(30.0, validation_alias="MCP_REQUEST_TIMEOUT")
    allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("https://chatgpt.com", "https://chat.openai.com"),
        validation_alias="MCP_ALLOWED_ORIGINS",
        description="Browser origins accepted by the HTTP transport.",
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        return _split_csv(value)

    @property
    def origin_allow_list(self) -> tuple[str, ...]:
        """Configured origins plus the bridge's own localhost origin."""
        return (f"http://localhost:{self.port}", *self.allowed_origins)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


@lru_cache()
def get_mcp_settings() -> McpSettings:
    """Return cached settings for the MCP bridge."""
    return McpSettings()


__all__ = [
    "AppSettings",
    "DexcomSettings",
    "McpSettings",
    "OAuthSettings",
    "OFFLINE_ACCESS_SCOPE",
    "SecuritySettings",
    "get_mcp_settings",
    "get_settings",
]
