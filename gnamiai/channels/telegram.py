from __future__ import annotations

"""Telegram channel.

Long-polls the Bot API ``getUpdates`` method on a fixed interval and hands
every text message to the gateway's message handler. Replies are sent with
``sendMessage`` to the originating chat; the chat id is the sender id.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..core.config import TelegramConfig
from ..core.errors import GnamiError
from .base import InboundMessage, MessageHandler

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
CHANNEL_NAME = "telegram"


class TelegramApiError(GnamiError):
    """Raised when the Bot API rejects a call."""


class TelegramChannel:
    def __init__(
        self,
        config: TelegramConfig,
        on_message: MessageHandler,
        *,
        api_base: str = TELEGRAM_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._on_message = on_message
        self._api_base = api_base.rstrip("/")
        self._transport = transport
        self._offset = 0
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Telegram polling started")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Telegram polling stopped")

    async def _run(self) -> None:
        interval = self._config.polling_interval_ms / 1000
        while True:
            try:
                await self.poll()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Telegram poll failed: {e}")
            await asyncio.sleep(interval)

    async def call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._api_base}/bot{self._config.bot_token}/{method}"
        async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
            response = await client.post(url, json=payload)
        if not response.is_success:
            raise TelegramApiError(f"Telegram API error ({response.status_code}): {response.text}")
        data = response.json()
        if data.get("ok") is not True:
            raise TelegramApiError(f'Telegram API returned failure for method "{method}".')
        return data

    async def send(self, chat_id: str, text: str) -> None:
        await self.call("sendMessage", {"chat_id": chat_id, "text": text})

    async def poll(self) -> int:
        """Fetch pending updates once and dispatch them in order.

        Returns:
            The number of messages handed to the message handler.
        """
        data = await self.call(
            "getUpdates", {"timeout": 0, "offset": self._offset, "allowed_updates": ["message"]}
        )
        handled = 0
        for update in data.get("result") or []:
            self._offset = int(update["update_id"]) + 1
            message = update.get("message") or {}
            text = (message.get("text") or "").strip()
            chat_id = (message.get("chat") or {}).get("id")
            if not text or chat_id is None:
                continue

            async def reply(content: str, _chat_id: str = str(chat_id)) -> None:
                await self.send(_chat_id, content)

            await self._on_message(
                InboundMessage(channel=CHANNEL_NAME, sender_id=str(chat_id), content=text, reply=reply)
            )
            handled += 1
        return handled
