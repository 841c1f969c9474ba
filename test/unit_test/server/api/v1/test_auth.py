import pytest
from httpx import AsyncClient

TOKEN = "s3cret-token"

PROTECTED = [
    "/api/sessions",
    "/api/overview",
    "/api/instances",
    "/api/skills",
    "/api/workspace/docs",
    "/api/pairings",
]


@pytest.fixture
def token_gateway(gateway):
    gateway.config.gateway.auth_token = TOKEN
    return gateway


@pytest.mark.parametrize("path", PROTECTED)
async def test_remote_client_without_token_is_rejected(remote_client: AsyncClient, token_gateway, path):
    response = await remote_client.get(path)
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


async def test_remote_client_with_header_token(remote_client: AsyncClient, token_gateway):
    response = await remote_client.get("/api/sessions", headers={"x-gnamiai-token": TOKEN})
    assert response.status_code == 200


async def test_remote_client_with_query_token(remote_client: AsyncClient, token_gateway):
    response = await remote_client.get("/api/sessions", params={"token": TOKEN})
    assert response.status_code == 200


async def test_remote_client_with_wrong_token(remote_client: AsyncClient, token_gateway):
    response = await remote_client.get("/api/sessions", headers={"x-gnamiai-token": "nope"})
    assert response.status_code == 401


async def test_local_client_needs_no_token(client: AsyncClient, token_gateway):
    response = await client.get("/api/sessions")
    assert response.status_code == 200


async def test_remote_client_allowed_when_no_token_configured(remote_client: AsyncClient):
    response = await remote_client.get("/api/sessions")
    assert response.status_code == 200


async def test_gateway_is_authorized_rules(gateway):
    gateway.config.gateway.auth_token = TOKEN
    assert gateway.is_authorized("127.0.0.1", None)
    assert gateway.is_authorized("::1", None)
    assert gateway.is_authorized("::ffff:127.0.0.1", None)
    assert not gateway.is_authorized("10.0.0.2", None)
    assert not gateway.is_authorized(None, None)
    assert gateway.is_authorized("10.0.0.2", TOKEN)
