import httpx
from httpx import ASGITransport, AsyncClient

from gnamiai.core.config import GnamiConfig
from gnamiai.server.main import create_app


async def test_send_requires_recipient_and_message(client: AsyncClient):
    response = await client.post("/api/send", json={"to": "alice", "message": "   "})
    assert response.status_code == 400
    assert response.json() == {"detail": "Both 'to' and 'message' are required"}


async def test_send_to_disconnected_webchat_client_is_404(client: AsyncClient):
    response = await client.post("/api/send", json={"to": "alice", "message": "hi"})
    assert response.status_code == 404
    assert response.json() == {"detail": "WebChat client not connected"}


async def test_send_to_unconfigured_telegram_is_400(client: AsyncClient):
    response = await client.post("/api/send", json={"channel": "telegram", "to": "42", "message": "hi"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Telegram channel not configured"}


async def test_send_rejects_unknown_channel(client: AsyncClient):
    response = await client.post("/api/send", json={"channel": "sms", "to": "42", "message": "hi"})
    assert response.status_code == 422


async def test_send_to_telegram_uses_bot_api(build_gateway):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.url.path, request.content))
        return httpx.Response(200, json={"ok": True, "result": {}})

    config = GnamiConfig.model_validate({"channels": {"telegram": {"botToken": "123:abc"}}})
    gateway = build_gateway(
        config, telegram_api_base="http://mock-telegram", telegram_transport=httpx.MockTransport(handler)
    )
    await gateway.start(start_channels=False)
    try:
        transport = ASGITransport(app=create_app(gateway))
        async with AsyncClient(transport=transport, base_url="http://localhost") as client:
            response = await client.post("/api/send", json={"channel": "telegram", "to": "42", "message": "hi"})
    finally:
        await gateway.stop()

    assert response.status_code == 200
    assert calls[0][0] == "/bot123:abc/sendMessage"
    assert b'"chat_id":"42"' in calls[0][1].replace(b" ", b"")
