from __future__ import annotations

"""Long-term memory service.

Two backends are supported:

- **basic**: a local JSON file (``basic-memory.json``) holding, per memory
  user id, a capped list of conversation notes and a map of remembered skills.
- **mem0**: the Mem0 HTTP API, used whenever a Mem0 API key is configured.
  Search results and the local timeline are combined into the context.

The memory user id is locked to a file on first use: the configured entity
(``MEM0_ENTITY`` / ``memory.entityName``) when present, otherwise
``<prefix>:<channel>:<sender>`` of the first caller. Every later call reuses
the locked id so a single memory entity accumulates over time.

Writes return the backend that stored the data; the turn engine records that
in a memory event. Callers treat every write as best effort.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..core.config import GnamiConfig, Settings, settings
from ..core.errors import MemoryBackendError

logger = logging.getLogger(__name__)

MAX_NOTES = 120
CONTEXT_NOTES = 8
NOTE_SNIPPET_CHARS = 280
MEM0_TOP_K = 8
MEM0_CONTEXT_LIMIT = 10


class MemoryBackend(str, Enum):
    mem0 = "mem0"
    basic = "basic"


class BasicMemoryUser(BaseModel):
    notes: List[str] = Field(default_factory=list)
    skills: Dict[str, str] = Field(default_factory=dict)


class BasicMemoryStore(BaseModel):
    users: Dict[str, BasicMemoryUser] = Field(default_factory=dict)


def _record_text(record: Dict[str, Any]) -> str:
    return str(record.get("memory") or record.get("text") or record.get("content") or "").strip()


def _numbered(entries: List[str]) -> str:
    return "\n".join(f"{index}. {entry}" for index, entry in enumerate(entries, start=1))


class MemoryService:
    """Best-effort long-term memory keyed by the locked memory user id."""

    def __init__(
        self,
        config: GnamiConfig,
        *,
        env: Settings = settings,
        basic_path: Optional[Path] = None,
        lock_path: Optional[Path] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._env = env
        self._basic_path = basic_path or env.basic_memory_path
        self._lock_path = lock_path or env.memory_entity_lock_path
        self._transport = transport
        self._file_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def mem0_key(self) -> Optional[str]:
        return self._env.mem0_api_key or self._config.memory.mem0_api_key

    @property
    def mem0_enabled(self) -> bool:
        return bool(self.mem0_key)

    @property
    def backend(self) -> MemoryBackend:
        return MemoryBackend.mem0 if self.mem0_enabled else MemoryBackend.basic

    @property
    def mem0_base_url(self) -> str:
        return self._config.memory.mem0_base_url or self._env.mem0_base_url

    @property
    def entity_locked(self) -> bool:
        return self._lock_path.exists()

    def configured_entity(self) -> Optional[str]:
        entity = self._env.mem0_entity or self._config.memory.entity_name
        return entity.strip() if entity and entity.strip() else None

    def _scope_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self._env.mem0_org_id:
            params["org_id"] = self._env.mem0_org_id
        if self._env.mem0_project_id:
            params["project_id"] = self._env.mem0_project_id
        return params

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.mem0_base_url,
            headers={
                "Authorization": f"Token {self.mem0_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            params=self._scope_params(),
            transport=self._transport,
            timeout=30.0,
        )

    # ------------------------------------------------------------------
    # Memory user id
    # ------------------------------------------------------------------

    async def user_id(self, session_user_id: str) -> str:
        def _resolve() -> str:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)
            if self._lock_path.exists():
                locked = self._lock_path.read_text(encoding="utf-8").strip()
                if locked:
                    return locked
            chosen = self.configured_entity() or f"{self._config.memory.user_id_prefix}:{session_user_id}"
            self._lock_path.write_text(chosen, encoding="utf-8")
            logger.info(f"Locked memory entity to {chosen}")
            return chosen

        async with self._file_lock:
            return await asyncio.to_thread(_resolve)

    # ------------------------------------------------------------------
    # Basic backend
    # ------------------------------------------------------------------

    def _load_basic(self) -> BasicMemoryStore:
        try:
            return BasicMemoryStore.model_validate_json(self._basic_path.read_text(encoding="utf-8"))
        except (FileNotFoundError, ValidationError, ValueError):
            return BasicMemoryStore()

    def _save_basic(self, store: BasicMemoryStore) -> None:
        self._basic_path.parent.mkdir(parents=True, exist_ok=True)
        self._basic_path.write_text(store.model_dump_json(indent=2), encoding="utf-8")

    async def _basic_user(self, session_user_id: str) -> BasicMemoryUser:
        user_id = await self.user_id(session_user_id)
        store = await asyncio.to_thread(self._load_basic)
        return store.users.get(user_id) or BasicMemoryUser()

    async def _basic_update(self, session_user_id: str, update) -> None:
        user_id = await self.user_id(session_user_id)
        async with self._file_lock:
            store = await asyncio.to_thread(self._load_basic)
            user = store.users.setdefault(user_id, BasicMemoryUser())
            update(user)
            await asyncio.to_thread(self._save_basic, store)

    async def _basic_context(self, session_user_id: str) -> str:
        user = await self._basic_user(session_user_id)
        return _numbered(user.notes[-CONTEXT_NOTES:])

    # ------------------------------------------------------------------
    # Mem0 backend
    # ------------------------------------------------------------------

    async def _mem0_search(self, user_id: str, query: str) -> List[Dict[str, Any]]:
        payload = {
            "query": query,
            "user_id": user_id,
            "version": "v2",
            "output_format": "v1.1",
            "filters": {"user_id": user_id},
            "top_k": MEM0_TOP_K,
        }
        async with self._client() as client:
            response = await client.post("/v1/memories/search/", json=payload)
        if not response.is_success:
            logger.warning(f"Mem0 search failed with HTTP {response.status_code}")
            return []
        data = response.json()
        if isinstance(data, list):
            return data
        return data.get("memories") or data.get("results") or []

    async def _mem0_add(
        self, user_id: str, messages: List[Dict[str, str]], metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        # Some deployments reject version/output_format or metadata, so progressively simpler payloads are tried.
        candidates: List[Dict[str, Any]] = [
            {
                "user_id": user_id,
                "messages": messages,
                "version": "v2",
                "output_format": "v1.1",
                "metadata": metadata or {},
            },
            {"user_id": user_id, "messages": messages, "metadata": metadata or {}},
            {"user_id": user_id, "messages": messages},
            {"user_id": user_id, "agent_id": "gnamiai", "messages": messages},
        ]
        errors: List[str] = []
        async with self._client() as client:
            for attempt, payload in enumerate(candidates, start=1):
                response = await client.post("/v1/memories/", json=payload)
                if response.is_success:
                    return
                errors.append(f"attempt{attempt}:{response.status_code}:{response.text[:800]}")
        raise MemoryBackendError(f"Mem0 write failed: {' | '.join(errors)}")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_context(self, session_user_id: str, latest_user_input: str, recent_hint: str = "") -> str:
        """Return memory context for the next model call ("" when empty)."""
        basic_context = await self._basic_context(session_user_id)
        if not self.mem0_enabled:
            return basic_context

        user_id = await self.user_id(session_user_id)
        queries = [
            q.strip()
            for q in (
                latest_user_input,
                recent_hint,
                "Important user preferences, identity, goals, current projects, and prior completed work",
                "What has this user done before with GnamiAI?",
            )
            if q.strip()
        ]
        seen: List[str] = []
        for query in queries:
            for record in await self._mem0_search(user_id, query):
                text = _record_text(record)
                if text and text not in seen and len(seen) < MEM0_CONTEXT_LIMIT:
                    seen.append(text)

        if seen and basic_context:
            return "\n".join(["Mem0 context:", _numbered(seen), "", "Local timeline memory:", basic_context])
        if seen:
            return _numbered(seen)
        return basic_context

    async def add_conversation_memory(
        self, session_user_id: str, user_content: str, assistant_content: str
    ) -> MemoryBackend:
        if self.mem0_enabled:
            user_id = await self.user_id(session_user_id)
            await self._mem0_add(
                user_id,
                [{"role": "user", "content": user_content}, {"role": "assistant", "content": assistant_content}],
            )
            return MemoryBackend.mem0

        note = f"User: {user_content[:NOTE_SNIPPET_CHARS]} | Assistant: {assistant_content[:NOTE_SNIPPET_CHARS]}"

        def _append(user: BasicMemoryUser) -> None:
            user.notes.append(note)
            del user.notes[:-MAX_NOTES]

        await self._basic_update(session_user_id, _append)
        return MemoryBackend.basic

    async def add_skill_memory(self, session_user_id: str, skill_name: str, skill_content: str) -> MemoryBackend:
        if self.mem0_enabled:
            user_id = await self.user_id(session_user_id)
            await self._mem0_add(
                user_id,
                [
                    {"role": "user", "content": f'Installed skill "{skill_name}".'},
                    {"role": "assistant", "content": f"SKILL:{skill_name}\n{skill_content}"},
                ],
                {"type": "skill", "skillName": skill_name},
            )
            return MemoryBackend.mem0

        def _remember(user: BasicMemoryUser) -> None:
            user.skills[skill_name] = skill_content

        await self._basic_update(session_user_id, _remember)
        return MemoryBackend.basic

    async def find_skill(self, session_user_id: str, skill_name: str) -> Optional[str]:
        """Return the remembered content of ``skill_name`` or None."""
        if not self.mem0_enabled:
            user = await self._basic_user(session_user_id)
            return user.skills.get(skill_name)

        user_id = await self.user_id(session_user_id)
        marker = f"SKILL:{skill_name}"
        for record in await self._mem0_search(user_id, marker):
            text = _record_text(record)
            if marker in text:
                return text.split(marker, 1)[1].strip() or None
        return None

    def describe(self) -> Dict[str, Any]:
        """Summary used by the overview endpoint."""
        return {
            "enabled": self._config.memory.enabled,
            "provider": self.backend.value,
            "env_key_loaded": bool(self._env.mem0_api_key),
            "entity": self.configured_entity(),
            "entity_locked": self.entity_locked,
        }
