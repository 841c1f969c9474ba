from __future__ import annotations

"""Remote debugging (Chrome DevTools Protocol) session.

A ``CdpSession`` owns one WebSocket to one browser target. Commands are sent
as ``{"id", "method", "params"}`` frames with strictly increasing ids and
correlated with their responses through a map of pending futures:

- a frame whose ``id`` matches a pending call resolves it with ``result``,
  or rejects it with ``CdpCommandError`` when it carries ``error``;
- frames without an id (events) or with an unknown id are ignored;
- a call without a response within ``command_timeout`` seconds fails with
  ``CdpTimeoutError`` and is removed, so a late response is ignored;
- closing the session (or losing the socket) fails every call still pending
  with ``CdpSessionClosedError`` and clears the map.

Usage::

    async with CdpSession(ws_url) as session:
        await session.command("Page.enable")
        await session.command("Page.navigate", {"url": "https://example.com"})
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from ..core.errors import CdpCommandError, CdpSessionClosedError, CdpTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 15.0


class CdpSession:
    """Id-correlated request/response channel to one browser target."""

    def __init__(self, ws_url: str, *, command_timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
        self._ws_url = ws_url
        self._command_timeout = command_timeout
        self._ws: Optional[ClientConnection] = None
        self._reader: Optional[asyncio.Task[None]] = None
        self._next_id = 0
        self._pending: Dict[int, asyncio.Future[Any]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def connect(self) -> None:
        """Open the WebSocket and start the reader task.

        Connection errors propagate unchanged.
        """
        self._ws = await connect(self._ws_url, max_size=None)
        self._reader = asyncio.create_task(self._read_loop())
        logger.debug(f"CDP session connected to {self._ws_url}")

    async def __aenter__(self) -> "CdpSession":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _read_loop(self) -> None:
        assert self._ws is not None
        try:
            async for raw in self._ws:
                self._dispatch(raw)
        except ConnectionClosed:
            pass
        finally:
            self._fail_pending()

    def _dispatch(self, raw: Any) -> None:
        try:
            payload = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring non-JSON CDP frame")
            return
        if not isinstance(payload, dict):
            return
        call_id = payload.get("id")
        if not isinstance(call_id, int) or not call_id:
            return
        future = self._pending.pop(call_id, None)
        if future is None or future.done():
            return
        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else None
            future.set_exception(CdpCommandError(message or "CDP command failed."))
            return
        future.set_result(payload.get("result"))

    def _fail_pending(self) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(CdpSessionClosedError())

    async def command(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send one command and wait for its result.

        Raises:
            CdpTimeoutError: No response within the command timeout.
            CdpCommandError: The browser answered with an error frame.
            CdpSessionClosedError: The session is closed or closes while waiting.
        """
        if self._ws is None:
            raise CdpSessionClosedError()
        self._next_id += 1
        call_id = self._next_id
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[call_id] = future
        try:
            await self._ws.send(json.dumps({"id": call_id, "method": method, "params": params or {}}))
            return await asyncio.wait_for(future, timeout=self._command_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"CDP command {method} (id={call_id}) timed out")
            raise CdpTimeoutError(method)
        except ConnectionClosed:
            raise CdpSessionClosedError()
        finally:
            self._pending.pop(call_id, None)

    async def close(self) -> None:
        """Close the socket and fail every pending call."""
        self._fail_pending()
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        if self._reader is not None:
            await self._reader
            self._reader = None
