from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Type

import httpx
import pytest
import pytest_asyncio
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models.function import AgentInfo, FunctionModel

from gnamiai.core.config import GnamiConfig, Settings
from gnamiai.core.database import create_all, create_engine, create_sessionmaker
from gnamiai.core.store import GatewayStore


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
        "http://testserver",  # Starlette TestClient
        "ws://testserver",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)


@pytest.fixture
def gnami_env(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary home, isolated from the developer's env and .env."""
    return Settings(
        _env_file=None,
        gnami_home=str(tmp_path / "home"),
        database_url=None,
        server_host="127.0.0.1",
        openai_api_key=None,
        local_model_base_url=None,
        local_model_api_key=None,
        mem0_api_key=None,
        mem0_base_url="https://api.mem0.ai",
        mem0_entity=None,
        mem0_org_id=None,
        mem0_project_id=None,
        telegram_bot_token=None,
    )


@pytest.fixture
def gnami_config() -> GnamiConfig:
    return GnamiConfig()


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncIterator[GatewayStore]:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'gateway.sqlite'}")
    await create_all(engine)
    yield GatewayStore(create_sessionmaker(engine))
    await engine.dispose()


class ScriptedModel:
    """Function-backed model that replays canned replies and records every prompt.

    ``replies`` may be a list (consumed in order, ``"ok"`` once exhausted) or a
    callable mapping the user prompt to the reply.
    """

    def __init__(self, replies=None, *, delay: float = 0.0) -> None:
        self._replies = replies if callable(replies) else list(replies or [])
        self._delay = delay
        self.prompts: List[str] = []
        self.system_prompts: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _respond(self, messages: List[ModelMessage], info: AgentInfo) -> ModelResponse:
        prompt = ""
        for message in messages:
            if isinstance(message, ModelRequest):
                for part in message.parts:
                    if isinstance(part, UserPromptPart) and isinstance(part.content, str):
                        prompt = part.content
                    elif isinstance(part, SystemPromptPart):
                        self.system_prompts.append(part.content)
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
        finally:
            self.in_flight -= 1
        if callable(self._replies):
            text = self._replies(prompt)
        else:
            text = self._replies.pop(0) if self._replies else "ok"
        return ModelResponse(parts=[TextPart(content=text)])

    def factory(self, provider: str, model_name: str) -> FunctionModel:
        return FunctionModel(self._respond)


@pytest.fixture
def scripted_model() -> Type[ScriptedModel]:
    return ScriptedModel
