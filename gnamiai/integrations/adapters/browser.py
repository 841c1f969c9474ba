from __future__ import annotations

"""Browser integration adapter.

Actions:

- ``fetch_html``: ``{url}`` → ``{status, html}``
- ``extract_text``: ``{url, maxChars?}`` → ``{text}`` (scripts/styles/tags
  removed, whitespace collapsed, capped at ``maxChars`` (default 4000))
- ``fill_form``: ``{url, fields, submitSelector?}`` opens a new target through
  the browser's remote debugging endpoint, navigates to ``url``, fills each
  field (matched by selector, ``name`` or ``id``), clicks the submit button
  and returns ``{ok, result}`` with the page's final url and title.

The browser must run with ``--remote-debugging-port`` (default endpoint
``http://127.0.0.1:9222``).
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from ...core.errors import IntegrationError
from ..base import BaseAdapter, IntegrationHealth
from ..cdp import DEFAULT_COMMAND_TIMEOUT, CdpSession
from ..helpers import as_object, as_optional_string, as_string, http_json

logger = logging.getLogger(__name__)

DEFAULT_DEBUGGER_URL = "http://127.0.0.1:9222"
DEFAULT_SUBMIT_SELECTOR = "button[type=submit],input[type=submit]"
DEFAULT_MAX_CHARS = 4000

_SCRIPT = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_STYLE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")

_FILL_SCRIPT = """
(() => {
  const fields = %(fields)s;
  for (const [key, value] of Object.entries(fields)) {
    const selectors = [
      key,
      '[name="' + key + '"]',
      '#' + key,
      'input[name="' + key + '"]',
      'textarea[name="' + key + '"]'
    ];
    let el = null;
    for (const sel of selectors) {
      try {
        el = document.querySelector(sel);
        if (el) break;
      } catch {}
    }
    if (!el) continue;
    el.focus();
    el.value = String(value);
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
  }
  const submit = document.querySelector(%(submit)s);
  if (submit) submit.click();
  return { url: location.href, title: document.title };
})();
"""


def strip_html(html: str) -> str:
    text = _SCRIPT.sub(" ", html)
    text = _STYLE.sub(" ", text)
    text = _TAG.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def _max_chars(value: Any) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return DEFAULT_MAX_CHARS
    return parsed if parsed >= 0 else DEFAULT_MAX_CHARS


class BrowserAdapter(BaseAdapter):
    """Drive a local Chromium-family browser through its debugging endpoint."""

    name = "browser"

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settle_delay: float = 1.5,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        super().__init__(config)
        self._transport = transport
        self._settle_delay = settle_delay
        self._command_timeout = command_timeout

    @property
    def debugger_url(self) -> str:
        return (as_optional_string(self.config.get("debuggerUrl")) or DEFAULT_DEBUGGER_URL).rstrip("/")

    def is_configured(self) -> bool:
        return True

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=30.0, follow_redirects=True)

    async def health_check(self) -> IntegrationHealth:
        try:
            async with self._client() as client:
                await http_json(client, "GET", f"{self.debugger_url}/json/version")
        except Exception as e:
            logger.debug(f"CDP health check failed: {e}")
            return IntegrationHealth(
                ok=False, details="CDP unavailable. Start Chrome/Edge with --remote-debugging-port=9222."
            )
        return IntegrationHealth(ok=True, details="CDP endpoint reachable.")

    async def _new_target(self, client: httpx.AsyncClient, url: str) -> Dict[str, Any]:
        response = await client.put(f"{self.debugger_url}/json/new?{quote(url, safe='')}")
        if not response.is_success:
            raise IntegrationError(
                f"Cannot create CDP target ({response.status_code}). "
                "Ensure browser runs with --remote-debugging-port."
            )
        return response.json()

    async def _close_target(self, client: httpx.AsyncClient, target_id: str) -> None:
        try:
            await client.put(f"{self.debugger_url}/json/close/{target_id}")
        except httpx.HTTPError as e:
            logger.debug(f"Ignoring CDP target close failure for {target_id}: {e}")

    async def _fetch(self, url: str) -> httpx.Response:
        async with self._client() as client:
            return await client.get(url)

    async def execute(self, action: str, params: Dict[str, Any]) -> Any:
        if action == "fetch_html":
            response = await self._fetch(as_string(params.get("url"), "url"))
            return {"status": response.status_code, "html": response.text}

        if action == "extract_text":
            response = await self._fetch(as_string(params.get("url"), "url"))
            return {"text": strip_html(response.text)[: _max_chars(params.get("maxChars", DEFAULT_MAX_CHARS))]}

        if action == "fill_form":
            return await self._fill_form(params)

        raise IntegrationError(f'Unsupported browser action "{action}".')

    async def _fill_form(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = as_string(params.get("url"), "url")
        fields = as_object(params.get("fields"), "fields")
        submit_selector = as_optional_string(params.get("submitSelector")) or DEFAULT_SUBMIT_SELECTOR
        script = _FILL_SCRIPT % {"fields": json.dumps(fields), "submit": json.dumps(submit_selector)}

        async with self._client() as client:
            target = await self._new_target(client, url)
            session = CdpSession(target["webSocketDebuggerUrl"], command_timeout=self._command_timeout)
            try:
                await session.connect()
                await session.command("Page.enable")
                await session.command("Runtime.enable")
                await session.command("Page.navigate", {"url": url})
                await asyncio.sleep(self._settle_delay)
                result = await session.command(
                    "Runtime.evaluate",
                    {"expression": script, "awaitPromise": True, "returnByValue": True},
                )
                return {"ok": True, "result": result}
            finally:
                await session.close()
                await self._close_target(client, str(target.get("id", "")))
