"""MCP bridge exposing the Dexcom OAuth gateway to LLM agents."""

from .client import GatewayRequestError, OAuthServerClient
from .resources import DexcomResources
from .tools import DexcomTools

__all__ = ["DexcomResources", "DexcomTools", "GatewayRequestError", "OAuthServerClient"]
