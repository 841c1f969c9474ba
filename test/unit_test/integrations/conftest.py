from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List

import pytest_asyncio
from websockets.asyncio.server import Server, ServerConnection, serve

Responder = Callable[[ServerConnection, Dict[str, Any]], Awaitable[None]]


@pytest_asyncio.fixture
async def cdp_server():
    """Start local WebSocket servers that answer each command through ``responder``.

    Returns the ``ws://`` URL of the started server.
    """
    servers: List[Server] = []

    async def _start(responder: Responder) -> str:
        async def handler(ws: ServerConnection) -> None:
            async for raw in ws:
                await responder(ws, json.loads(raw))

        server = await serve(handler, "127.0.0.1", 0)
        servers.append(server)
        port = server.sockets[0].getsockname()[1]
        return f"ws://127.0.0.1:{port}"

    yield _start

    for server in servers:
        server.close()
        await server.wait_closed()
