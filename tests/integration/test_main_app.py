import pytest
from httpx import AsyncClient, ASGITransport

from portfolio_dashboard.main import app


@pytest.mark.asyncio
@pytest.mark.integration
async def test_root_lists_endpoints():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        resp = await ac.get("/")

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Portfolio Dashboard API"
    assert body["endpoints"]["portfolio"] == "GET /api/portfolio"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_routes_mounted_under_api_prefix():
    paths = {route.path for route in app.routes}
    assert {"/api/portfolio", "/api/health", "/api/status"} <= paths
