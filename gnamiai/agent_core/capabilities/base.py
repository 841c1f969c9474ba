from __future__ import annotations

"""Capability protocol and execution data models.

A capability is the concrete executor for one ``AgentAction`` variant.

The action protocol resolves ``action.type`` through a ``CapabilityRegistry``
and executes the implementation with a ``CapabilityContext``. Capabilities
raise on failure; the protocol turns the exception into an ``ok=False``
result for that action only.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from ..schemas.domain import ActionType, AgentAction
from ..skills import SkillStore

IntegrationDispatch = Callable[[str, str, Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class ActionDeps:
    """Runtime dependencies available to capabilities.

    Attributes
    ----------
    skills:
        Local skill store used by ``install_skill``.
    integrations:
        Optional ``(app, action, params) -> result`` dispatcher. When absent,
        ``integration`` actions fail with a not-configured message.
    """

    skills: SkillStore
    integrations: Optional[IntegrationDispatch] = None


@dataclass(frozen=True)
class CapabilityContext:
    """Execution context passed to capability implementations."""

    deps: ActionDeps
    session_key: Optional[str] = None


@dataclass(frozen=True)
class CapabilityResult:
    """Structured capability execution result."""

    ok: bool
    output: str


class Capability(Protocol):
    """Protocol for capability implementations."""

    action_type: ActionType

    async def execute(self, ctx: CapabilityContext, *, action: AgentAction) -> CapabilityResult: ...
