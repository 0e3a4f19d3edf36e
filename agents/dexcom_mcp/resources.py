"""Read-only resources exposing live glucose data to the agent."""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ResourceError

from dexcom_oauth.utils.dates import Clock, format_date_for_dexcom, utcnow

from .client import GatewayRequestError, OAuthServerClient

CURRENT_GLUCOSE_URI = "dexcom://glucose/current"
TODAY_GLUCOSE_URI = "dexcom://glucose/today"


class DexcomResources:
    """Resource handlers backed by the gateway client."""

    def __init__(self, client: OAuthServerClient, *, clock: Clock = utcnow) -> None:
        self._client = client
        self._clock = clock

    async def current_glucose(self) -> str:
        try:
            reading = await self._client.get_current_glucose()
        except GatewayRequestError as exc:
            raise ResourceError(f"Failed to read resource: {exc.error}") from exc
        return json.dumps(reading, indent=2)

    async def today_glucose(self) -> str:
        """Readings since midnight UTC."""
        now = self._clock()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        try:
            data = await self._client.get_glucose_range(
                format_date_for_dexcom(start_of_day), format_date_for_dexcom(now)
            )
        except GatewayRequestError as exc:
            raise ResourceError(f"Failed to read resource: {exc.error}") from exc
        return json.dumps(data, indent=2)

    def register(self, mcp: FastMCP) -> None:
        mcp.resource(
            CURRENT_GLUCOSE_URI,
            name="Current Glucose Level",
            description="Real-time glucose reading from Dexcom CGM",
            mime_type="application/json",
        )(self.current_glucose)
        mcp.resource(
            TODAY_GLUCOSE_URI,
            name="Today's Glucose Readings",
            description="All glucose readings from today",
            mime_type="application/json",
        )(self.today_glucose)


__all__ = ["CURRENT_GLUCOSE_URI", "DexcomResources", "TODAY_GLUCOSE_URI"]
