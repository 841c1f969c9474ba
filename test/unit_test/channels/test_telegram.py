from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List

import httpx
import pytest

from gnamiai.channels import InboundMessage, TelegramChannel
from gnamiai.channels.telegram import TelegramApiError
from gnamiai.core.config import TelegramConfig

API_BASE = "http://mock-telegram"


class BotApi:
    """Minimal Bot API double serving queued getUpdates batches."""

    def __init__(self, batches: List[List[Dict[str, Any]]]) -> None:
        self.batches = list(batches)
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content)
        self.calls.append((method, body))
        if method == "getUpdates":
            result = self.batches.pop(0) if self.batches else []
            return httpx.Response(200, json={"ok": True, "result": result})
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})


def _update(update_id: int, text: Any = None, chat_id: Any = 42) -> Dict[str, Any]:
    message: Dict[str, Any] = {"message_id": update_id}
    if text is not None:
        message["text"] = text
    if chat_id is not None:
        message["chat"] = {"id": chat_id}
    return {"update_id": update_id, "message": message}


def _channel(api: Any, received: List[InboundMessage]) -> TelegramChannel:
    async def on_message(message: InboundMessage) -> None:
        received.append(message)

    return TelegramChannel(
        TelegramConfig(botToken="123:abc"),
        on_message,
        api_base=API_BASE,
        transport=httpx.MockTransport(api),
    )


async def test_poll_dispatches_text_messages_and_advances_offset() -> None:
    api = BotApi([[_update(10, " hello "), _update(11, None), _update(12, "no chat", chat_id=None)], []])
    received: List[InboundMessage] = []
    channel = _channel(api, received)

    assert await channel.poll() == 1
    assert await channel.poll() == 0

    assert [(m.channel, m.sender_id, m.content) for m in received] == [("telegram", "42", "hello")]
    assert received[0].user_scoped_id == "telegram:42"
    assert api.calls[0] == ("getUpdates", {"timeout": 0, "offset": 0, "allowed_updates": ["message"]})
    assert api.calls[1][1]["offset"] == 13


async def test_reply_sends_to_originating_chat() -> None:
    api = BotApi([[_update(1, "hi", chat_id=-100)]])
    received: List[InboundMessage] = []
    channel = _channel(api, received)

    await channel.poll()
    await received[0].reply("hello back")

    assert api.calls[-1] == ("sendMessage", {"chat_id": "-100", "text": "hello back"})


async def test_call_uses_bot_token_in_url() -> None:
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"ok": True, "result": []})

    channel = _channel(handler, [])
    await channel.call("getMe", {})
    assert seen == [f"{API_BASE}/bot123:abc/getMe"]


async def test_http_failure_raises_api_error() -> None:
    channel = _channel(lambda request: httpx.Response(401, text="Unauthorized"), [])
    with pytest.raises(TelegramApiError, match=r"Telegram API error \(401\): Unauthorized"):
        await channel.poll()


async def test_not_ok_payload_raises_api_error() -> None:
    channel = _channel(lambda request: httpx.Response(200, json={"ok": False}), [])
    with pytest.raises(TelegramApiError, match='Telegram API returned failure for method "sendMessage".'):
        await channel.send("42", "hi")


async def test_start_polls_until_stopped() -> None:
    api = BotApi([[_update(5, "ping")]])
    arrived = asyncio.Event()

    async def on_message(message: InboundMessage) -> None:
        arrived.set()

    channel = TelegramChannel(
        TelegramConfig(botToken="123:abc"), on_message, api_base=API_BASE, transport=httpx.MockTransport(api)
    )
    channel.start()
    assert channel.running

    await asyncio.wait_for(arrived.wait(), timeout=2.0)
    await channel.stop()

    assert not channel.running


async def test_poll_failures_do_not_stop_the_loop() -> None:
    attempts: List[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        return httpx.Response(500, text="boom")

    channel = _channel(handler, [])
    channel.start()
    await asyncio.sleep(0.05)
    assert channel.running
    await channel.stop()
    assert attempts
