import pytest
from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient
from travel_expense_mcp.config import Settings
from travel_expense_mcp.errors import AuthConfigError
from travel_expense_mcp.server import (
    BearerAuthMiddleware,
    _attach_health_route,
    _parse_args,
    build_tripit_client,
    create_app,
    create_mcp,
)


class FakeService:
    pass


class FakeTripIt:
    pass


def _protected_client(token: str = "secret-token") -> TestClient:
    async def protected(_request):
        return PlainTextResponse("OK")

    app = Starlette(routes=[Route("/mcp", protected, methods=["GET", "POST"])])
    _attach_health_route(app)
    return TestClient(BearerAuthMiddleware(app, token), raise_server_exceptions=False)


def test_health_route():
    app = Starlette()
    _attach_health_route(app)
    client = TestClient(app)

    res = client.get("/health")

    assert res.status_code == 200
    assert res.json() == {"status": "ok", "service": "travel-expense-mcp"}


def test_bearer_token_accepted():
    res = _protected_client().get("/mcp", headers={"Authorization": "Bearer secret-token"})

    assert res.status_code == 200
    assert res.text == "OK"


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "Basic secret-token"}],
)
def test_bearer_token_rejected(headers):
    res = _protected_client().get("/mcp", headers=headers)

    assert res.status_code == 401
    assert res.json()["error"] == "unauthorized"
    assert res.headers["WWW-Authenticate"] == "Bearer"


def test_health_skips_auth():
    res = _protected_client().get("/health")

    assert res.status_code == 200


def test_create_app_enforces_configured_token():
    settings = Settings(mcp_api_token="secret-token")
    client = TestClient(create_app(settings, mcp=FastMCP("test")), raise_server_exceptions=False)

    assert client.get("/health").status_code == 200
    assert client.post("/mcp", json={}).status_code == 401


@pytest.mark.asyncio
async def test_create_mcp_registers_concur_tools_only_without_tripit():
    mcp = create_mcp(Settings(), service=FakeService())

    names = set(await mcp.get_tools())

    assert {"list_concur_reports", "create_per_diem_expenses", "upload_receipt"} <= names
    assert "list_trips" not in names
    assert "reconcile_card_charges" not in names


@pytest.mark.asyncio
async def test_create_mcp_registers_tripit_tools():
    mcp = create_mcp(Settings(), service=FakeService(), tripit=FakeTripIt())

    names = set(await mcp.get_tools())

    assert {"list_trips", "get_trip_flights", "reconcile_card_charges"} <= names


def test_create_mcp_requires_concur_credentials():
    with pytest.raises(AuthConfigError):
        create_mcp(Settings())


def test_tripit_client_built_when_configured():
    assert build_tripit_client(Settings()) is None

    settings = Settings(
        tripit_api_key="key",
        tripit_api_secret="secret",
        tripit_access_token="token",
        tripit_access_token_secret="token-secret",
    )
    assert build_tripit_client(settings) is not None


def test_parse_args():
    assert _parse_args([]).stdio is False
    args = _parse_args(["--stdio", "--port", "9000"])
    assert args.stdio is True
    assert args.port == 9000
