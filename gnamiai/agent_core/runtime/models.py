from __future__ import annotations

"""Turn engine dependency bundle and LangGraph state type.

- ``TurnDeps`` collects the services one conversational turn touches.
- ``_TurnState`` is the state passed between LangGraph nodes. A node that
  decides the turn's outcome sets ``reply``; the graph then ends and the
  engine delivers that text through the channel.
"""

from dataclasses import dataclass
from typing import NotRequired, Optional, Required, TypedDict

from ...core.store import GatewayStore
from ...memory import MemoryService
from ..capabilities import ActionDeps, CapabilityRegistry
from ..model_provider import AgentRuntime
from ..persona import PersonaService
from ..skills import SkillStore
from ..workspace import WorkspaceDocs


@dataclass(frozen=True)
class TurnDeps:
    """Dependency bundle for ``TurnEngine``.

    Built by the gateway wiring code; tests assemble it directly with a
    temporary store, workspace and a function-backed model.
    """

    store: GatewayStore
    memory: MemoryService
    skills: SkillStore
    docs: WorkspaceDocs
    persona: PersonaService
    agent: AgentRuntime
    registry: CapabilityRegistry
    action_deps: ActionDeps


class _TurnState(TypedDict):
    """Mutable LangGraph state for one inbound message.

    Required keys:

    - ``channel`` / ``sender_id`` / ``content``: the inbound message.
    - ``session_key``: ``<channel>:<sender_id>``, used for memory.

    Optional keys:

    - ``session_id``: set once the persona gate has created the session.
    - ``reply``: the outbound text; its presence terminates the graph.
    """

    channel: Required[str]
    sender_id: Required[str]
    content: Required[str]
    session_key: Required[str]
    session_id: NotRequired[Optional[int]]
    reply: NotRequired[str]
