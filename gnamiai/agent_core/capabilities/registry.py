from __future__ import annotations

"""Capability registry.

The registry maps an ``ActionType`` to its executor. ``build_default_registry``
registers one capability per ``AgentAction`` variant, so dispatch over a parsed
action can never miss.
"""

from typing import Dict, Optional

from ..schemas.domain import ActionType
from .base import Capability
from .builtin import InstallSkillCapability, IntegrationCapability, ShellCapability


class CapabilityRegistry:
    """
    In-memory mapping of action types to capability implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the action type.
        - ``get`` raises ``KeyError`` if the action type is missing.
    """

    def __init__(self) -> None:
        self._caps: Dict[ActionType, Capability] = {}

    def register(self, cap: Capability) -> None:
        self._caps[cap.action_type] = cap

    def get(self, action_type: ActionType) -> Capability:
        return self._caps[action_type]

    def has(self, action_type: ActionType) -> bool:
        return action_type in self._caps


def build_default_registry(*, shell: Optional[ShellCapability] = None) -> CapabilityRegistry:
    """Register the built-in executor for every action type."""
    registry = CapabilityRegistry()
    registry.register(shell or ShellCapability())
    registry.register(InstallSkillCapability())
    registry.register(IntegrationCapability())
    return registry
