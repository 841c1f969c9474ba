import os

from httpx import AsyncClient

from gnamiai.core.database.entities import MessageDirection


async def _seed_session(gateway) -> int:
    session = await gateway.store.get_or_create_session("webchat", "alice")
    await gateway.store.add_message(session.id, MessageDirection.inbound, "hi")
    await gateway.store.add_message(session.id, MessageDirection.outbound, "hello")
    return session.id


async def test_list_sessions(client: AsyncClient, gateway):
    await _seed_session(gateway)

    response = await client.get("/api/sessions")

    assert response.status_code == 200
    sessions = response.json()["sessions"]
    assert len(sessions) == 1
    assert sessions[0]["channel"] == "webchat"
    assert sessions[0]["sender_id"] == "alice"


async def test_list_messages_oldest_first(client: AsyncClient, gateway):
    session_id = await _seed_session(gateway)

    response = await client.get("/api/messages", params={"sessionId": str(session_id)})

    assert response.status_code == 200
    messages = response.json()["messages"]
    assert [(m["direction"], m["content"]) for m in messages] == [("inbound", "hi"), ("outbound", "hello")]


async def test_list_messages_rejects_non_numeric_session(client: AsyncClient):
    response = await client.get("/api/messages", params={"sessionId": "abc"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid sessionId"}


async def test_list_messages_unknown_session_is_empty(client: AsyncClient):
    response = await client.get("/api/messages", params={"sessionId": "999"})
    assert response.status_code == 200
    assert response.json() == {"messages": []}


async def test_overview(client: AsyncClient, gateway):
    await _seed_session(gateway)

    response = await client.get("/api/overview")

    assert response.status_code == 200
    data = response.json()
    assert data["health"] == "ok"
    assert data["model"] == "openai/gpt-5.3-codex"
    assert data["gatewayPort"] == 18789
    assert data["channelsConfigured"] == {"webchat": True, "telegram": False}
    assert data["memory"]["provider"] == "basic"
    assert data["integrations"] == [{"app": "browser", "enabled": False, "configured": True}]
    assert data["instance"]["pid"] > 0
    assert data["stats"]["sessions"] == 1
    assert data["stats"]["messages"] == 2
    assert data["stats"]["by_channel"] == {"webchat": 1}


async def test_instances(client: AsyncClient, gateway):
    response = await client.get("/api/instances")

    assert response.status_code == 200
    (instance,) = response.json()["instances"]
    assert instance["id"] == f"host:{instance['host']}"
    assert instance["pid"] == os.getpid()
    assert instance["cwd"] == os.getcwd()
    assert instance["startedAt"] == gateway.started_at.isoformat()
    assert instance["python"]
