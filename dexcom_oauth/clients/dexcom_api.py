"""Dexcom v3 data API client.

Every call goes through :func:`with_token_refresh`, composed once in the
constructor, so callers never handle tokens themselves.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import httpx

from dexcom_oauth.core.config import DexcomSettings
from dexcom_oauth.schemas.glucose import DataRange, Device, GlucoseReading
from dexcom_oauth.services.mock_data import MockGlucoseSource
from dexcom_oauth.utils.dates import Clock, format_date_for_dexcom, utcnow
from dexcom_oauth.utils.http import with_token_refresh

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from dexcom_oauth.services.oauth_manager import OAuthFlowManager

logger = logging.getLogger(__name__)

CURRENT_READING_WINDOW = timedelta(minutes=15)


class DexcomAPIError(Exception):
    """Non-authentication error while talking to the Dexcom data API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class DexcomAuthError(DexcomAPIError):
    """Dexcom rejected the request's credentials even after a refresh."""


class DexcomAPIClient:
    """Fetch readings, devices and data range for the authenticated user."""

    def __init__(
        self,
        dexcom_settings: DexcomSettings,
        oauth_manager: "OAuthFlowManager",
        *,
        timeout: float = 30.0,
        mock_source: Optional[MockGlucoseSource] = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=dexcom_settings.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self._send = with_token_refresh(
            self._http.request,
            get_token=oauth_manager.get_valid_access_token,
            refresh_token=oauth_manager.refresh_access_token,
        )
        self._mock = mock_source
        self._clock = clock

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_glucose_values(
        self, start: datetime, end: datetime
    ) -> List[GlucoseReading]:
        """Estimated glucose values between ``start`` and ``end``."""
        if self._mock is not None:
            return self._mock.readings(start, end)

        payload = await self._get_json(
            "/v3/users/self/egvs",
            params={
                "startDate": format_date_for_dexcom(start),
                "endDate": format_date_for_dexcom(end),
            },
        )
        records = payload.get("records") or payload.get("egvs") or []
        readings = [GlucoseReading.model_validate(record) for record in records]
        # Dexcom returns newest first; callers expect chronological order.
        readings.sort(key=lambda reading: reading.system_time)
        logger.debug("Fetched glucose values", extra={"count": len(readings)})
        return readings

    async def get_current_glucose(self) -> Optional[GlucoseReading]:
        """Most recent reading from the last fifteen minutes, if any."""
        if self._mock is not None:
            return self._mock.current()

        end = self._clock()
        readings = await self.get_glucose_values(end - CURRENT_READING_WINDOW, end)
        return readings[-1] if readings else None

    async def get_data_range(self) -> DataRange:
        if self._mock is not None:
            return self._mock.data_range()

        payload = await self._get_json("/v3/users/self/dataRange")
        bounds = payload if "start" in payload else payload.get("egvs") or {}
        return DataRange.model_validate(
            {**payload, "start": bounds.get("start"), "end": bounds.get("end")}
        )

    async def get_devices(self) -> List[Device]:
        if self._mock is not None:
            return self._mock.devices()

        payload = await self._get_json("/v3/users/self/devices")
        records = payload.get("records") or payload.get("devices") or []
        return [Device.model_validate(record) for record in records]

    async def _get_json(
        self, path: str, *, params: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        try:
            response = await self._send("GET", path, params=params)
        except httpx.HTTPError as exc:
            logger.error("Dexcom request failed", extra={"path": path})
            raise DexcomAPIError("Dexcom request failed") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise DexcomAuthError(
                "Dexcom rejected the access token",
                status_code=response.status_code,
                response_body=response.text,
            )
        if not response.is_success:
            logger.error(
                "Dexcom API error",
                extra={"path": path, "status_code": response.status_code},
            )
            raise DexcomAPIError(
                "Dexcom API request failed",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise DexcomAPIError(
                "Dexcom returned a non-JSON body", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise DexcomAPIError(
                "Unexpected Dexcom payload shape", status_code=response.status_code
            )
        return payload


__all__ = [
    "CURRENT_READING_WINDOW",
    "DexcomAPIClient",
    "DexcomAPIError",
    "DexcomAuthError",
]
