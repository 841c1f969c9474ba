"""
Chat Endpoints.

- ``POST /api/send``: push a message to a Telegram chat or a connected
  webchat client.
- ``/ws?sender=<id>``: the webchat WebSocket. Clients send
  ``{"type": "message", "content": ...}`` and receive
  ``{"type": "assistant", "content": ...}``. Each message runs one turn.
"""

import json
from typing import Literal

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from gnamiai.channels import InboundMessage
from gnamiai.core.logging_config import get_logger
from gnamiai.server.api.deps import AuthorizedGatewayDep, get_gateway, is_authorized

logger = get_logger(__name__)
router = APIRouter()

WEBCHAT_CHANNEL = "webchat"


class SendRequest(BaseModel):
    channel: Literal["webchat", "telegram"] = "webchat"
    to: str = ""
    message: str = ""


@router.post("/api/send", summary="Send Outbound Message")
async def send_message(body: SendRequest, gateway: AuthorizedGatewayDep):
    to = body.to.strip()
    content = body.message.strip()
    if not to or not content:
        raise HTTPException(status_code=400, detail="Both 'to' and 'message' are required")
    if body.channel == "telegram":
        if gateway.telegram is None:
            raise HTTPException(status_code=400, detail="Telegram channel not configured")
        await gateway.telegram.send(to, content)
    elif not await gateway.webchat.send(to, content):
        raise HTTPException(status_code=404, detail="WebChat client not connected")
    return {"ok": True}


@router.websocket("/ws")
async def webchat(websocket: WebSocket):
    gateway = get_gateway(websocket)
    await websocket.accept()
    if not is_authorized(websocket, gateway):
        await websocket.close(code=4001, reason="Unauthorized")
        return
    sender_id = (websocket.query_params.get("sender") or "").strip()
    if not sender_id:
        await websocket.close(code=4002, reason="sender is required")
        return

    gateway.webchat.register(sender_id, websocket)

    async def reply(content: str) -> None:
        await websocket.send_text(json.dumps({"type": "assistant", "content": content}))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                payload = json.loads(raw)
            except ValueError:
                logger.debug(f"Ignoring non-JSON webchat frame from {sender_id}")
                continue
            if not isinstance(payload, dict) or payload.get("type") != "message":
                continue
            content = str(payload.get("content") or "").strip()
            if not content:
                continue
            await gateway.handle_inbound(
                InboundMessage(channel=WEBCHAT_CHANNEL, sender_id=sender_id, content=content, reply=reply)
            )
    except WebSocketDisconnect:
        logger.debug(f"Webchat sender {sender_id} disconnected")
    finally:
        gateway.webchat.unregister(sender_id, websocket)
