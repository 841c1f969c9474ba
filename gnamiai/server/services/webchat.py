"""
Webchat Connection Hub.

Tracks the open webchat WebSocket per sender so that outbound messages sent
through ``POST /api/send`` reach the right browser tab.
"""

import json
from typing import Dict, Optional

from fastapi import WebSocket

from gnamiai.core.logging_config import get_logger

logger = get_logger(__name__)


class WebchatHub:
    """Registry of connected webchat clients keyed by sender id."""

    def __init__(self) -> None:
        self._clients: Dict[str, WebSocket] = {}

    def register(self, sender_id: str, websocket: WebSocket) -> None:
        previous = self._clients.get(sender_id)
        if previous is not None and previous is not websocket:
            logger.info(f"Webchat sender {sender_id} reconnected; replacing previous socket")
        self._clients[sender_id] = websocket

    def unregister(self, sender_id: str, websocket: Optional[WebSocket] = None) -> None:
        current = self._clients.get(sender_id)
        if current is None:
            return
        if websocket is None or current is websocket:
            del self._clients[sender_id]

    def is_connected(self, sender_id: str) -> bool:
        return sender_id in self._clients

    async def send(self, sender_id: str, content: str) -> bool:
        """Push an assistant message to a connected client.

        Returns:
            False when no client is connected for ``sender_id``.
        """
        websocket = self._clients.get(sender_id)
        if websocket is None:
            return False
        await websocket.send_text(json.dumps({"type": "assistant", "content": content}))
        return True
