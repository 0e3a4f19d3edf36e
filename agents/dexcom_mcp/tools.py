"""Tools the agent can call to read Dexcom data through the gateway."""

from typing import Annotated, Any, Dict

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from .client import GatewayRequestError, OAuthServerClient

TOOL_DESCRIPTIONS: Dict[str, str] = {
    "get_current_glucose": "Get the most recent glucose reading from Dexcom CGM",
    "get_glucose_range": "Get glucose readings within a specific date/time range",
    "get_glucose_statistics": (
        "Get statistical analysis of glucose data over a period "
        "(average, min, max, time in range)"
    ),
    "get_devices": "Get information about the user's Dexcom devices",
}


class DexcomTools:
    """Facade over the gateway client exposed as MCP tools."""

    def __init__(self, client: OAuthServerClient) -> None:
        self._client = client

    async def get_current_glucose(self) -> Dict[str, Any]:
        try:
            return await self._client.get_current_glucose()
        except GatewayRequestError as exc:
            raise ToolError(f"Error: {exc}") from exc

    async def get_glucose_range(
        self,
        startDate: Annotated[  # noqa: N803
            str,
            Field(description="Start date in ISO 8601 format (e.g., 2024-01-01T00:00:00Z)"),
        ],
        endDate: Annotated[  # noqa: N803
            str,
            Field(description="End date in ISO 8601 format (e.g., 2024-01-02T00:00:00Z)"),
        ],
    ) -> Dict[str, Any]:
        try:
            return await self._client.get_glucose_range(startDate, endDate)
        except GatewayRequestError as exc:
            raise ToolError(f"Error: {exc}") from exc

    async def get_glucose_statistics(
        self,
        days: Annotated[
            int, Field(ge=1, le=90, description="Number of days to analyze (1-90)")
        ],
    ) -> Dict[str, Any]:
        try:
            return await self._client.get_statistics(days)
        except GatewayRequestError as exc:
            raise ToolError(f"Error: {exc}") from exc

    async def get_devices(self) -> Dict[str, Any]:
        try:
            return await self._client.get_devices()
        except GatewayRequestError as exc:
            raise ToolError(f"Error: {exc}") from exc

    def register(self, mcp: FastMCP) -> None:
        for name, description in TOOL_DESCRIPTIONS.items():
            mcp.add_tool(getattr(self, name), name=name, description=description)


__all__ = ["DexcomTools", "TOOL_DESCRIPTIONS"]
