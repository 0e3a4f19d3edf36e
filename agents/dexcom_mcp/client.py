"""HTTP client for the OAuth gateway's REST surface."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class GatewayRequestError(Exception):
    """Raised when the OAuth gateway cannot serve a request."""

    def __init__(
        self, error: str, message: str = "", *, status_code: Optional[int] = None
    ) -> None:
        super().__init__(error)
        self.error = error
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.message:
            return f"{self.error}\n{self.message}"
        return self.error


def _error_from_response(response: httpx.Response) -> GatewayRequestError:
    detail: Any = None
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        pass

    if isinstance(detail, dict):
        error = str(detail.get("error") or f"HTTP {response.status_code}")
        message = str(detail.get("message") or "")
    elif isinstance(detail, str):
        error, message = detail, ""
    else:
        error = f"OAuth server returned HTTP {response.status_code}"
        message = ""
    return GatewayRequestError(error, message, status_code=response.status_code)


class OAuthServerClient:
    """Thin async wrapper over the gateway's JSON endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._http.aclose()

    async def check_auth_status(self) -> Dict[str, Any]:
        """Return the gateway's auth status, or an unauthenticated stand-in."""
        try:
            response = await self._http.get("/auth/status")
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Auth status check failed: %s", exc)
            return {
                "authenticated": False,
                "message": "Failed to connect to OAuth server",
            }

    async def get_current_glucose(self) -> Dict[str, Any]:
        return await self._get_json("/api/glucose/current")

    async def get_glucose_range(self, start_date: str, end_date: str) -> Dict[str, Any]:
        return await self._get_json(
            "/api/glucose/range",
            params={"startDate": start_date, "endDate": end_date},
        )

    async def get_statistics(self, days: int) -> Dict[str, Any]:
        return await self._get_json("/api/statistics", params={"days": days})

    async def get_devices(self) -> Dict[str, Any]:
        return await self._get_json("/api/devices")

    async def get_data_range(self) -> Dict[str, Any]:
        return await self._get_json("/api/data-range")

    async def _get_json(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        try:
            response = await self._http.get(path, params=params)
        except httpx.HTTPError as exc:
            raise GatewayRequestError(
                "Failed to connect to OAuth server",
                f"Make sure the OAuth server is running at {self._base_url}",
            ) from exc

        if not response.is_success:
            raise _error_from_response(response)

        try:
            payload = response.json()
        except ValueError as exc:
            raise GatewayRequestError(
                "Invalid response from OAuth server", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise GatewayRequestError(
                "Invalid response from OAuth server", status_code=response.status_code
            )
        return payload


__all__ = ["GatewayRequestError", "OAuthServerClient"]
