from __future__ import annotations

import random
from datetime import timedelta

import httpx
import pytest

from dexcom_oauth.clients.dexcom_api import DexcomAPIClient, DexcomAPIError, DexcomAuthError
from dexcom_oauth.core.config import DexcomSettings
from dexcom_oauth.services.mock_data import MockGlucoseSource

SETTINGS = DexcomSettings(
    client_id="client-abc",
    client_secret="secret-xyz",
    environment="sandbox",
)


class DummyOAuthManager:
    def __init__(self) -> None:
        self.token = "access-1"
        self.refresh_calls = 0

    async def get_valid_access_token(self) -> str | None:
        return self.token

    async def refresh_access_token(self) -> str:
        self.refresh_calls += 1
        self.token = "access-2"
        return self.token


def _egv(system_time: str, value: int | None) -> dict:
    return {
        "recordId": system_time,
        "systemTime": system_time,
        "displayTime": system_time,
        "value": value,
        "unit": "mg/dL",
        "trend": "flat",
        "trendRate": 0.1,
    }


def _client(handler, clock, manager=None) -> DexcomAPIClient:
    return DexcomAPIClient(
        SETTINGS,
        manager or DummyOAuthManager(),
        transport=httpx.MockTransport(handler),
        clock=clock,
    )


@pytest.mark.anyio
async def test_glucose_values_are_sorted_and_dates_formatted(clock) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "records": [
                    _egv("2024-01-15T11:55:00", 118),
                    _egv("2024-01-15T11:45:00", 110),
                    _egv("2024-01-15T11:50:00", 114),
                ]
            },
        )

    client = _client(handler, clock)
    readings = await client.get_glucose_values(clock() - timedelta(hours=1), clock())

    assert [reading.value for reading in readings] == [110, 114, 118]
    assert readings[0].model_extra["recordId"] == "2024-01-15T11:45:00"
    (request,) = seen
    assert request.url.path == "/v3/users/self/egvs"
    assert request.url.params["startDate"] == "2024-01-15T11:00:00"
    assert request.url.params["endDate"] == "2024-01-15T12:00:00"
    assert request.headers["Authorization"] == "Bearer access-1"
    await client.aclose()


@pytest.mark.anyio
async def test_current_glucose_returns_latest_in_window(clock) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["startDate"] == "2024-01-15T11:45:00"
        return httpx.Response(
            200,
            json={"records": [_egv("2024-01-15T11:58:00", 130), _egv("2024-01-15T11:53:00", 128)]},
        )

    client = _client(handler, clock)

    reading = await client.get_current_glucose()

    assert reading is not None
    assert reading.value == 130


@pytest.mark.anyio
async def test_current_glucose_none_when_empty(clock) -> None:
    client = _client(lambda request: httpx.Response(200, json={"records": []}), clock)

    assert await client.get_current_glucose() is None


@pytest.mark.anyio
async def test_retries_once_after_401(clock) -> None:
    authorizations: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        authorizations.append(request.headers["Authorization"])
        if request.headers["Authorization"] == "Bearer access-1":
            return httpx.Response(401, json={"error": "expired"})
        return httpx.Response(200, json={"records": []})

    manager = DummyOAuthManager()
    client = _client(handler, clock, manager)

    assert await client.get_devices() == []
    assert authorizations == ["Bearer access-1", "Bearer access-2"]
    assert manager.refresh_calls == 1


@pytest.mark.anyio
async def test_persistent_401_raises_auth_error(clock) -> None:
    client = _client(lambda request: httpx.Response(401, text="unauthorized"), clock)

    with pytest.raises(DexcomAuthError):
        await client.get_devices()


@pytest.mark.anyio
async def test_upstream_failure_raises_api_error(clock) -> None:
    client = _client(lambda request: httpx.Response(503, text="maintenance"), clock)

    with pytest.raises(DexcomAPIError) as excinfo:
        await client.get_data_range()

    assert not isinstance(excinfo.value, DexcomAuthError)
    assert excinfo.value.status_code == 503


@pytest.mark.anyio
async def test_transport_error_raises_api_error(clock) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = _client(handler, clock)

    with pytest.raises(DexcomAPIError):
        await client.get_devices()


@pytest.mark.anyio
async def test_data_range_reads_egv_bounds(clock) -> None:
    payload = {
        "recordType": "dataRange",
        "egvs": {
            "start": {"systemTime": "2023-10-01T00:00:00", "displayTime": "2023-10-01T00:00:00"},
            "end": {"systemTime": "2024-01-15T11:55:00", "displayTime": "2024-01-15T11:55:00"},
        },
    }
    client = _client(lambda request: httpx.Response(200, json=payload), clock)

    data_range = await client.get_data_range()

    assert data_range.start.system_time == "2023-10-01T00:00:00"
    assert data_range.end.system_time == "2024-01-15T11:55:00"


@pytest.mark.anyio
async def test_mock_source_bypasses_network(clock) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("mock mode must not hit the network")

    client = DexcomAPIClient(
        SETTINGS,
        DummyOAuthManager(),
        transport=httpx.MockTransport(handler),
        mock_source=MockGlucoseSource(clock=clock, rng=random.Random(7)),
        clock=clock,
    )

    readings = await client.get_glucose_values(clock() - timedelta(hours=1), clock())
    devices = await client.get_devices()

    assert len(readings) == 13
    assert all(40 <= reading.value <= 400 for reading in readings)
    assert devices and devices[0].transmitter_generation
    assert (await client.get_current_glucose()) is not None
