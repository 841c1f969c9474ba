"""Schemas for the agent core.

- ``base``: ``BaseSchema`` with strict extra-field handling.
- ``domain``: agent actions, action results, persona fields, model requests.
"""

from .domain import (
    ActionResult,
    ActionType,
    AgentAction,
    AgentRequest,
    InstallSkillAction,
    IntegrationAction,
    PersonaFields,
    ShellAction,
    Thinking,
    agent_action_adapter,
)

__all__ = [
    "ActionResult",
    "ActionType",
    "AgentAction",
    "AgentRequest",
    "InstallSkillAction",
    "IntegrationAction",
    "PersonaFields",
    "ShellAction",
    "Thinking",
    "agent_action_adapter",
]
