try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import json

import httpx
import pytest
from mcp.server.fastmcp.exceptions import ResourceError, ToolError
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from agents.dexcom_mcp.client import GatewayRequestError, OAuthServerClient
from agents.dexcom_mcp.resources import DexcomResources
from agents.dexcom_mcp.server import OriginGuardMiddleware, check_gateway, create_mcp_server
from agents.dexcom_mcp.tools import DexcomTools
from dexcom_oauth.core.config import McpSettings


def _gateway(handler) -> OAuthServerClient:
    return OAuthServerClient("http://gateway.test/", transport=httpx.MockTransport(handler))


def _reading() -> dict:
    return {"systemTime": "2024-01-15T11:55:00", "value": 123, "unit": "mg/dL"}


@pytest.mark.anyio
async def test_client_forwards_query_parameters():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"count": 0, "readings": []})

    client = _gateway(handler)

    await client.get_glucose_range("2024-01-01T00:00:00Z", "2024-01-02T00:00:00Z")
    await client.get_statistics(14)

    assert seen[0].url.path == "/api/glucose/range"
    assert seen[0].url.params["startDate"] == "2024-01-01T00:00:00Z"
    assert seen[1].url.params["days"] == "14"
    await client.aclose()


@pytest.mark.anyio
async def test_client_surfaces_gateway_error_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401,
            json={"detail": {"error": "Not authenticated", "message": "Visit /auth/login"}},
        )

    with pytest.raises(GatewayRequestError) as excinfo:
        await _gateway(handler).get_devices()

    assert excinfo.value.error == "Not authenticated"
    assert excinfo.value.message == "Visit /auth/login"
    assert excinfo.value.status_code == 401


@pytest.mark.anyio
async def test_auth_status_falls_back_when_unreachable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _gateway(handler)

    status = await client.check_auth_status()

    assert status == {"authenticated": False, "message": "Failed to connect to OAuth server"}
    assert await check_gateway(client) is False


@pytest.mark.anyio
async def test_tools_return_gateway_payload():
    tools = DexcomTools(_gateway(lambda request: httpx.Response(200, json=_reading())))

    assert await tools.get_current_glucose() == _reading()


@pytest.mark.anyio
async def test_tool_errors_carry_error_and_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404,
            json={"detail": {"error": "No data available", "message": "No glucose data found"}},
        )

    tools = DexcomTools(_gateway(handler))

    with pytest.raises(ToolError) as excinfo:
        await tools.get_glucose_statistics(7)

    assert str(excinfo.value) == "Error: No data available\nNo glucose data found"


@pytest.mark.anyio
async def test_server_registers_tools_and_resources():
    mcp = create_mcp_server(McpSettings(), _gateway(lambda request: httpx.Response(200, json={})))

    tool_names = {tool.name for tool in await mcp.list_tools()}
    resource_uris = {str(resource.uri) for resource in await mcp.list_resources()}

    assert tool_names == {
        "get_current_glucose",
        "get_glucose_range",
        "get_glucose_statistics",
        "get_devices",
    }
    assert resource_uris == {"dexcom://glucose/current", "dexcom://glucose/today"}


@pytest.mark.anyio
async def test_statistics_tool_rejects_out_of_range_days():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        calls.append(request)
        return httpx.Response(200, json={})

    mcp = create_mcp_server(McpSettings(), _gateway(handler))

    with pytest.raises(ToolError):
        await mcp.call_tool("get_glucose_statistics", {"days": 120})
    assert calls == []


@pytest.mark.anyio
async def test_today_resource_requests_since_midnight(clock):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"count": 0, "readings": []})

    resources = DexcomResources(_gateway(handler), clock=clock)

    body = await resources.today_glucose()

    assert json.loads(body) == {"count": 0, "readings": []}
    assert seen[0].url.params["startDate"] == "2024-01-15T00:00:00"
    assert seen[0].url.params["endDate"] == "2024-01-15T12:00:00"


@pytest.mark.anyio
async def test_resource_failure_raises_resource_error():
    resources = DexcomResources(
        _gateway(lambda request: httpx.Response(502, json={"detail": {"error": "Failed"}}))
    )

    with pytest.raises(ResourceError):
        await resources.current_glucose()


@pytest.mark.anyio
async def test_origin_guard_blocks_unknown_browser_origins():
    async def endpoint(request: Request) -> PlainTextResponse:
        return PlainTextResponse("ok")

    app = OriginGuardMiddleware(
        Starlette(routes=[Route("/mcp", endpoint, methods=["POST"])]),
        allowed_origins=McpSettings().origin_allow_list,
    )
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        no_origin = await client.post("/mcp")
        allowed = await client.post("/mcp", headers={"Origin": "https://chatgpt.com"})
        local = await client.post("/mcp", headers={"Origin": "http://localhost:3002"})
        blocked = await client.post("/mcp", headers={"Origin": "https://evil.example"})

    assert no_origin.status_code == 200
    assert allowed.status_code == 200
    assert local.status_code == 200
    assert blocked.status_code == 403
    assert blocked.json() == {"error": "Forbidden: invalid origin"}
