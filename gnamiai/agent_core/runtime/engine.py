from __future__ import annotations

"""LangGraph turn engine.

``TurnEngine`` drives one inbound message to exactly one outbound reply.

Graph
-----

Nodes run in a fixed order; the first node that sets ``reply`` ends the
graph:

1. ``pairing``: unapproved senders get the approval instruction. Nothing
   else is persisted.
2. ``skill_install``: ``/skill install <name>`` followed by the skill body.
3. ``skill_restore``: ``/skill restore <name>`` reinstalls a skill from
   long-term memory.
4. ``persona``: creates the session, stores the inbound message and runs the
   persona bootstrap until user name and language are known.
5. ``identity``: answers "who are you" style questions from ``SOUL.md``
   without calling the model.
6. ``round_trip``: first model pass, up to three actions, optional second
   pass summarizing the action results.

Concurrency
-----------

Turns for different senders run concurrently. Turns for the same
``(channel, sender_id)`` are serialized with a per-sender ``asyncio.Lock``
so their persistence writes and model calls never interleave.

Errors
------

Long-term memory writes are best effort: failures become ``failed`` memory
events. Any other exception is caught in ``handle_inbound`` and turned into
a single ``GnamiAI error: ...`` reply.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Dict, List, Optional, Tuple

from langgraph.graph import END, StateGraph

from ...channels.base import InboundMessage
from ...core.database.entities import ChatMessage, MemoryEventStatus, MessageDirection
from ...memory import MemoryBackend
from ..capabilities import CapabilityContext
from ..persona import identity_reply, is_identity_question, parse_persona_input, persona_prompt
from ..protocol import (
    MAX_ACTIONS_PER_TURN,
    execute_agent_actions,
    parse_agent_actions,
    strip_agent_actions,
    summarize_action_results,
)
from ..schemas.domain import AgentRequest, Thinking
from .models import TurnDeps, _TurnState

logger = logging.getLogger(__name__)

SKILL_INSTALL_PREFIX = "/skill install "
SKILL_RESTORE_PREFIX = "/skill restore "
HISTORY_LIMIT = 30
HISTORY_HINT_SIZE = 8
ACTION_COMPLETED = "Action completed."

_NODE_ORDER = ("pairing", "skill_install", "skill_restore", "persona", "identity", "round_trip")


def format_history(messages: List[ChatMessage]) -> List[str]:
    return [
        f"{'User' if m.direction == MessageDirection.inbound else 'Assistant'}: {m.content}" for m in messages
    ]


class TurnEngine:
    """Run the conversational turn state machine for inbound channel messages."""

    def __init__(self, deps: TurnDeps) -> None:
        self._deps = deps
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Dict[Tuple[str, str], int] = {}
        self._graph = self._build_graph()

    @property
    def deps(self) -> TurnDeps:
        return self._deps

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_TurnState)
        g.add_node("pairing", self._node_pairing)
        g.add_node("skill_install", self._node_skill_install)
        g.add_node("skill_restore", self._node_skill_restore)
        g.add_node("persona", self._node_persona)
        g.add_node("identity", self._node_identity)
        g.add_node("round_trip", self._node_round_trip)

        g.set_entry_point("pairing")
        for current, nxt in zip(_NODE_ORDER, _NODE_ORDER[1:]):
            g.add_conditional_edges(current, self._route_after, {"reply": END, "continue": nxt})
        g.add_edge("round_trip", END)
        return g.compile()

    @staticmethod
    def _route_after(state: _TurnState) -> str:
        return "reply" if state.get("reply") is not None else "continue"

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _sender_lock(self, key: Tuple[str, str]) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def run_turn(self, channel: str, sender_id: str, content: str) -> str:
        """Run the graph for one message and return the reply text.

        Exceptions propagate; ``handle_inbound`` is the error boundary.
        """
        state: _TurnState = {
            "channel": channel,
            "sender_id": sender_id,
            "content": content,
            "session_key": f"{channel}:{sender_id}",
        }
        final = await self._graph.ainvoke(state)
        return final.get("reply") or ""

    async def handle_inbound(self, message: InboundMessage) -> None:
        """Process one inbound message and send exactly one reply."""
        async with self._sender_lock((message.channel, message.sender_id)):
            try:
                reply = await self.run_turn(message.channel, message.sender_id, message.content)
                await message.reply(reply)
            except Exception as e:
                logger.exception(f"Inbound message handling failed for {message.user_scoped_id}")
                try:
                    await message.reply(f"GnamiAI error: {str(e) or 'unknown runtime failure'}")
                except Exception:
                    logger.exception(f"Could not deliver error reply to {message.user_scoped_id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _record_memory_write(
        self, session_key: str, write: Awaitable[MemoryBackend], label: Optional[str] = None
    ) -> None:
        store = self._deps.store
        try:
            backend = await write
        except Exception as e:
            logger.warning(f"Memory write failed for {session_key}: {e}")
            detail = f"{label} {e}" if label else str(e)
            await store.add_memory_event(session_key, MemoryEventStatus.failed, detail)
            return
        detail = f"{label} backend:{backend.value}" if label else f"backend:{backend.value}"
        await store.add_memory_event(session_key, MemoryEventStatus.saved, detail)

    async def _reply_in_session(self, state: _TurnState, text: str) -> _TurnState:
        session_id = state.get("session_id")
        if session_id is not None:
            await self._deps.store.add_message(session_id, MessageDirection.outbound, text)
        return {**state, "reply": text}

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def _node_pairing(self, state: _TurnState) -> _TurnState:
        pairing = await self._deps.store.upsert_pairing(state["channel"], state["sender_id"])
        if pairing.approved:
            return state
        logger.info(f"Pairing pending for {state['session_key']}")
        return {
            **state,
            "reply": f"Pairing required. Approve with: gnamiai pairing approve {state['channel']} {pairing.code}",
        }

    async def _node_skill_install(self, state: _TurnState) -> _TurnState:
        content = state["content"]
        if not content.startswith(SKILL_INSTALL_PREFIX):
            return state
        first_line, _, rest = content.partition("\n")
        skill_name = first_line[len(SKILL_INSTALL_PREFIX) :].strip()
        skill_content = rest.strip()
        if not skill_name or not skill_content:
            return {**state, "reply": "Usage: /skill install <name> followed by SKILL.md content on next lines."}

        skill_id = await self._deps.skills.install(skill_name, skill_content)
        await self._record_memory_write(
            state["session_key"],
            self._deps.memory.add_skill_memory(state["session_key"], skill_name, skill_content),
            f"skill:{skill_name}",
        )
        return {**state, "reply": f"Skill installed: {skill_id}"}

    async def _node_skill_restore(self, state: _TurnState) -> _TurnState:
        content = state["content"]
        if not content.startswith(SKILL_RESTORE_PREFIX):
            return state
        skill_name = content[len(SKILL_RESTORE_PREFIX) :].strip()
        if not skill_name:
            return {**state, "reply": "Usage: /skill restore <name>"}
        if await self._deps.skills.has(skill_name):
            return {**state, "reply": f"Skill already installed: {skill_name}"}
        remembered = await self._deps.memory.find_skill(state["session_key"], skill_name)
        if not remembered:
            return {**state, "reply": f'No remembered skill found for "{skill_name}".'}
        skill_id = await self._deps.skills.install(skill_name, remembered)
        return {**state, "reply": f"Skill restored from memory: {skill_id}"}

    async def _node_persona(self, state: _TurnState) -> _TurnState:
        store = self._deps.store
        session = await store.get_or_create_session(state["channel"], state["sender_id"])
        await store.add_message(session.id, MessageDirection.inbound, state["content"])
        state = {**state, "session_id": session.id}

        persona = await self._deps.persona.read()
        if persona.is_complete():
            return state

        parsed = parse_persona_input(state["content"])
        if parsed.is_empty():
            return await self._reply_in_session(state, persona_prompt(persona))

        updated = await self._deps.persona.apply(parsed)
        if not updated.is_complete():
            return await self._reply_in_session(state, persona_prompt(updated))
        intro = (
            f"Setup complete. I am {updated.assistant_name}. I will speak {updated.language}. "
            f"Nice to meet you, {updated.user_name}."
        )
        return await self._reply_in_session(state, intro)

    async def _node_identity(self, state: _TurnState) -> _TurnState:
        if not is_identity_question(state["content"]):
            return state
        docs = self._deps.docs
        soul_doc = await docs.read("SOUL.md")
        assistant_name = await docs.resolve_assistant_name(self._deps.persona.default_assistant_name)
        answer = identity_reply(soul_doc, assistant_name)
        state = await self._reply_in_session(state, answer)
        await self._record_memory_write(
            state["session_key"],
            self._deps.memory.add_conversation_memory(state["session_key"], state["content"], answer),
            "identity-reply",
        )
        return state

    async def _node_round_trip(self, state: _TurnState) -> _TurnState:
        deps = self._deps
        session_id = state.get("session_id")
        assert session_id is not None
        content = state["content"]
        session_key = state["session_key"]

        recent = await deps.store.get_recent_messages(session_id, HISTORY_LIMIT)
        history = format_history(recent)
        memory_context = await deps.memory.get_context(
            session_key, content, "\n".join(history[-HISTORY_HINT_SIZE:])
        )
        workspace_context = await deps.docs.build_context()

        first_pass = await deps.agent.respond(
            AgentRequest(
                input=f"{content}\n\nWorkspace context:\n{workspace_context}",
                history=history,
                thinking=Thinking.medium,
                memory_context=memory_context,
            )
        )
        actions = parse_agent_actions(first_pass)
        assistant = strip_agent_actions(first_pass)

        if actions:
            executed = min(len(actions), MAX_ACTIONS_PER_TURN)
            logger.info(f"Executing {executed} of {len(actions)} action(s) for {session_key}")
            results = await execute_agent_actions(
                actions,
                registry=deps.registry,
                ctx=CapabilityContext(deps=deps.action_deps, session_key=session_key),
            )
            second_pass = await deps.agent.respond(
                AgentRequest(
                    input="\n".join(
                        [
                            f"Original user request: {content}",
                            "Actions were executed. Summarize outcome clearly and keep concise.",
                            "Do not emit new gnami-action blocks in this answer.",
                            "",
                            summarize_action_results(results),
                        ]
                    ),
                    history=history,
                    thinking=Thinking.medium,
                    memory_context="\n\n".join(part for part in (memory_context, workspace_context) if part),
                )
            )
            assistant = strip_agent_actions(second_pass) or assistant or ACTION_COMPLETED

        state = await self._reply_in_session(state, assistant)
        await self._record_memory_write(
            session_key, deps.memory.add_conversation_memory(session_key, content, assistant)
        )
        return state
