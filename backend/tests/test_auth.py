"""Tests for local token authentication and CORS hardening."""

import os
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from carline.services.local_auth import configured_token, verify_local_token

TOKEN = "test-secret-token"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def authed_client():
    """Client with auth disabled (standard for most tests)."""
    # conftest.py sets CARLINE_NO_AUTH=true
    from carline.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def auth_required_client():
    """Client where auth IS required: requests need X-Local-Token."""
    with patch.dict(os.environ, {"CARLINE_NO_AUTH": "", "CARLINE_LOCAL_TOKEN": TOKEN}):
        from carline.main import app

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c


@pytest.mark.anyio
async def test_health_no_auth_required(auth_required_client: AsyncClient):
    resp = await auth_required_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_api_without_token_returns_401(auth_required_client: AsyncClient):
    resp = await auth_required_client.get("/api/stats")
    assert resp.status_code == 401
    assert "auth token" in resp.json()["detail"].lower()


@pytest.mark.anyio
async def test_api_with_valid_token_passes(auth_required_client: AsyncClient):
    resp = await auth_required_client.get("/api/stats", headers={"X-Local-Token": TOKEN})
    assert resp.status_code == 200


@pytest.mark.anyio
async def test_api_with_invalid_token_returns_401(auth_required_client: AsyncClient):
    resp = await auth_required_client.get("/api/stats", headers={"X-Local-Token": "wrong-token"})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_graph_page_accepts_query_token(auth_required_client: AsyncClient):
    """The standalone page is opened in a browser tab, so it can carry the token in the URL."""
    resp = await auth_required_client.get("/api/view/page", params={"token": TOKEN})
    assert resp.status_code == 200
    bad = await auth_required_client.get("/api/view/page", params={"token": "nope"})
    assert bad.status_code == 401


@pytest.mark.anyio
async def test_no_token_configured_disables_auth(authed_client: AsyncClient):
    resp = await authed_client.get("/api/stats")
    assert resp.status_code == 200


@pytest.mark.anyio
async def test_security_headers_present(authed_client: AsyncClient):
    resp = await authed_client.get("/api/health")
    assert resp.headers.get("X-Content-Type-Options") == "nosniff"
    assert resp.headers.get("X-Frame-Options") == "DENY"
    assert "max-age" in resp.headers.get("Strict-Transport-Security", "")


@pytest.mark.anyio
async def test_cors_restricted_methods(authed_client: AsyncClient):
    resp = await authed_client.options(
        "/api/health",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "DELETE",
        },
    )
    allowed = resp.headers.get("Access-Control-Allow-Methods", "")
    assert "DELETE" not in allowed


@pytest.mark.anyio
async def test_cors_allows_local_token_header(authed_client: AsyncClient):
    resp = await authed_client.options(
        "/api/health",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-Local-Token",
        },
    )
    allowed = resp.headers.get("Access-Control-Allow-Headers", "")
    assert "X-Local-Token" in allowed


def test_configured_token_follows_environment():
    with patch.dict(os.environ, {"CARLINE_NO_AUTH": "", "CARLINE_LOCAL_TOKEN": TOKEN}):
        assert configured_token() == TOKEN
    with patch.dict(os.environ, {"CARLINE_NO_AUTH": "", "CARLINE_LOCAL_TOKEN": "rotated"}):
        assert configured_token() == "rotated"
    with patch.dict(os.environ, {"CARLINE_NO_AUTH": "true", "CARLINE_LOCAL_TOKEN": TOKEN}):
        assert configured_token() is None
    with patch.dict(os.environ, {"CARLINE_NO_AUTH": "", "CARLINE_LOCAL_TOKEN": ""}):
        assert configured_token() is None


def test_verify_local_token():
    assert verify_local_token(TOKEN, TOKEN)
    assert not verify_local_token("wrong-token", TOKEN)
    assert not verify_local_token("", TOKEN)
    assert not verify_local_token(None, TOKEN)
