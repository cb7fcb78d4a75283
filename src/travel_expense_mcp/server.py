"""FastMCP server entry point for the travel expense tools."""

from __future__ import annotations

import argparse
import logging
import os
import secrets
import sys
from typing import TYPE_CHECKING, Any, Sequence

import sentry_sdk
from sentry_sdk.integrations.mcp import MCPIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from . import __version__
from .auth import TokenManager, require_viable
from .client import ConcurClient
from .concur import ConcurService
from .config import Settings, _secret_value
from .otel import init_otel, instrument_app
from .tools import (
    attendees,
    configuration,
    expenses,
    per_diem,
    receipts,
    reconcile,
    reports,
    trips,
)
from .tripit import OAuth1Signer, TripItClient

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from fastmcp import FastMCP

SERVICE_NAME = "travel-expense-mcp"
HEALTH_PATH = "/health"


def _init_sentry(settings: Settings) -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{SERVICE_NAME}@{__version__}",
        integrations=[
            StarletteIntegration(
                transaction_style="endpoint",
                failed_request_status_codes={403, *range(500, 600)},
            ),
            MCPIntegration(),
        ],
        send_default_pii=False,
        traces_sample_rate=0.1,
    )
    logger.info("sentry_initialized environment=%s", settings.environment)


class BearerAuthMiddleware:
    """ASGI middleware requiring ``Authorization: Bearer <MCP_API_TOKEN>``.

    The health route stays open for load balancer probes.
    """

    EXEMPT_PATHS = {HEALTH_PATH}

    def __init__(self, app: Any, token: str) -> None:
        self.app = app
        self.token = token

    async def __call__(self, scope, receive, send) -> None:
        if scope.get("type") != "http" or scope.get("path", "") in self.EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        auth_header = headers.get(b"authorization", b"").decode()
        if auth_header.startswith("Bearer ") and secrets.compare_digest(
            auth_header[7:].encode(), self.token.encode()
        ):
            await self.app(scope, receive, send)
            return

        logger.warning("mcp_auth_rejected path=%s", scope.get("path", ""))
        response = JSONResponse(
            {"error": "unauthorized", "error_description": "Valid bearer token required"},
            status_code=401,
            headers={"WWW-Authenticate": "Bearer"},
        )
        await response(scope, receive, send)


def _load_settings() -> Settings:
    return Settings()


def build_concur_service(settings: Settings) -> ConcurService:
    credentials = require_viable(settings.concur_credentials())
    tokens = TokenManager(credentials, token_url=settings.concur_token_url)
    client = ConcurClient(tokens, base_url=settings.concur_base_url)
    return ConcurService(client)


def build_tripit_client(settings: Settings) -> TripItClient | None:
    if not settings.tripit_configured:
        logger.info("tripit_disabled: TRIPIT_* credentials not set")
        return None
    signer = OAuth1Signer(
        settings.tripit_api_key.strip(),
        _secret_value(settings.tripit_api_secret).strip(),
        _secret_value(settings.tripit_access_token).strip(),
        _secret_value(settings.tripit_access_token_secret).strip(),
    )
    return TripItClient(signer, base_url=settings.tripit_base_url)


def create_mcp(
    settings: Settings | None = None,
    *,
    service: ConcurService | None = None,
    tripit: TripItClient | None = None,
) -> "FastMCP":
    from fastmcp import FastMCP

    settings = settings or _load_settings()
    _init_sentry(settings)
    service = service or build_concur_service(settings)
    tripit = tripit or build_tripit_client(settings)

    mcp = FastMCP(SERVICE_NAME)

    reports.register_tools(mcp, service)
    expenses.register_tools(mcp, service)
    attendees.register_tools(mcp, service)
    receipts.register_tools(mcp, service)
    per_diem.register_tools(mcp, service)
    configuration.register_tools(mcp, service)
    if tripit is not None:
        trips.register_tools(mcp, tripit)
        reconcile.register_tools(mcp, service, tripit)

    return mcp


def _attach_health_route(app: Any) -> None:
    async def health_check(_request):
        return JSONResponse({"status": "ok", "service": SERVICE_NAME})

    app.routes.append(Route(HEALTH_PATH, health_check, methods=["GET", "HEAD"]))


def create_app(settings: Settings | None = None, mcp: "FastMCP | None" = None):
    settings = settings or _load_settings()
    mcp = mcp or create_mcp(settings=settings)
    app_instance = mcp.http_app(
        path="/mcp",
        transport="streamable-http",
        stateless_http=True,
        json_response=True,
    )
    _attach_health_route(app_instance)

    app: Any = app_instance
    api_token = _secret_value(settings.mcp_api_token).strip()
    if api_token:
        app = BearerAuthMiddleware(app, api_token)
    else:
        logger.warning("mcp_auth_disabled: MCP_API_TOKEN not set")

    if init_otel(environment=settings.environment):
        app = instrument_app(app)

    if os.getenv("ENABLE_CORS", "false").lower() == "true":
        return CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "Accept", "Mcp-Session-Id"],
            expose_headers=["*"],
        )
    return app


_app: Any | None = None


def get_app() -> Any:
    """Get or create the app instance (lazy initialization)."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=SERVICE_NAME, description=__doc__)
    parser.add_argument(
        "--stdio",
        action="store_true",
        help="serve MCP over stdin/stdout instead of HTTP",
    )
    parser.add_argument("--port", type=int, default=None, help="HTTP port (default: $PORT or 3000)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = _load_settings()

    # stdout carries the stdio transport
    logging.basicConfig(
        level=settings.log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if args.stdio:
        create_mcp(settings=settings).run(transport="stdio")
        return

    import uvicorn

    port = args.port or settings.port
    logger.info("http_server_starting port=%s", port)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",  # nosec B104
        port=port,
    )


if __name__ == "__main__":
    main()
