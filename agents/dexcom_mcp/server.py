"""
MCP server exposing the Dexcom gateway to LLM agents.

Runs over stdio for local agent hosts or as a stateless streamable HTTP
endpoint for remote ones.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Optional, Sequence

import anyio
import uvicorn
from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from dexcom_oauth.core.config import McpSettings, get_mcp_settings
from dexcom_oauth.core.logging import configure_logging

from .client import OAuthServerClient
from .resources import DexcomResources
from .tools import DexcomTools

logger = logging.getLogger(__name__)

SERVER_NAME = "dexcom-mcp-server"
MCP_PATH = "/mcp"


class OriginGuardMiddleware:
    """Reject browser requests to the MCP endpoint from unexpected origins.

    Requests without an ``Origin`` header (curl, server-to-server) pass through.
    """

    def __init__(self, app: ASGIApp, allowed_origins: Iterable[str], path: str = MCP_PATH) -> None:
        self.app = app
        self.allowed_origins = frozenset(allowed_origins)
        self.path = path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].startswith(self.path):
            origin = Headers(scope=scope).get("origin")
            if origin and origin not in self.allowed_origins:
                logger.warning("Rejected MCP request from origin %s", origin)
                response = JSONResponse(
                    {"error": "Forbidden: invalid origin"}, status_code=403
                )
                await response(scope, receive, send)
                return
        await self.app(scope, receive, send)


def create_mcp_server(settings: McpSettings, client: OAuthServerClient) -> FastMCP:
    """Build the FastMCP server with the Dexcom tools and resources."""
    mcp = FastMCP(
        SERVER_NAME,
        instructions=(
            "Access Dexcom CGM glucose data: current reading, ranges, "
            "statistics and devices."
        ),
        host=settings.host,
        port=settings.port,
        streamable_http_path=MCP_PATH,
        stateless_http=True,
        json_response=True,
        # Origins are enforced by OriginGuardMiddleware against the configured allow-list.
        transport_security=TransportSecuritySettings(
            enable_dns_rebinding_protection=False
        ),
    )
    DexcomTools(client).register(mcp)
    DexcomResources(client).register(mcp)

    @mcp.custom_route("/health", methods=["GET"])
    async def health(request: Request) -> Response:
        return JSONResponse({"status": "ok", "transport": "http"})

    return mcp


def build_http_app(mcp: FastMCP, settings: McpSettings) -> ASGIApp:
    app = mcp.streamable_http_app()
    app.add_middleware(
        OriginGuardMiddleware, allowed_origins=settings.origin_allow_list
    )
    return app


async def check_gateway(client: OAuthServerClient) -> bool:
    """Log whether the gateway is reachable and holds Dexcom credentials."""
    status = await client.check_auth_status()
    if status.get("authenticated"):
        logger.info("Connected to OAuth server and authenticated")
        return True
    logger.warning(
        "Not authenticated with Dexcom (%s). Visit %s/auth/login to authenticate",
        status.get("message", "unknown status"),
        client.base_url,
    )
    return False


async def serve_stdio(settings: McpSettings) -> None:
    client = OAuthServerClient(settings.oauth_server_url, timeout=settings.request_timeout)
    try:
        await check_gateway(client)
        mcp = create_mcp_server(settings, client)
        logger.info("Dexcom MCP server running on stdio")
        await mcp.run_stdio_async()
    finally:
        await client.aclose()


async def serve_http(settings: McpSettings) -> None:
    client = OAuthServerClient(settings.oauth_server_url, timeout=settings.request_timeout)
    try:
        await check_gateway(client)
        app = build_http_app(create_mcp_server(settings, client), settings)
        logger.info(
            "Dexcom MCP HTTP server listening on http://%s:%s%s",
            settings.host,
            settings.port,
            MCP_PATH,
        )
        config = uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
        await uvicorn.Server(config).serve()
    finally:
        await client.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Dexcom MCP server")
    parser.add_argument(
        "--transport",
        choices=("stdio", "http"),
        default="stdio",
        help="stdio for local agent hosts, http for streamable HTTP",
    )
    args = parser.parse_args(argv)

    settings = get_mcp_settings()
    # stdout carries the protocol on the stdio transport.
    configure_logging(settings.log_level, stream=sys.stderr)

    if args.transport == "http":
        anyio.run(serve_http, settings)
    else:
        anyio.run(serve_stdio, settings)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())


__all__ = [
    "OriginGuardMiddleware",
    "build_http_app",
    "check_gateway",
    "create_mcp_server",
    "main",
    "serve_http",
    "serve_stdio",
]
