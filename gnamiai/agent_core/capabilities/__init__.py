"""Action executors.

A *capability* executes one variant of ``AgentAction``:

- ``ShellCapability``: run a command through the platform shell with a timeout.
- ``InstallSkillCapability``: write a skill into the local skill store.
- ``IntegrationCapability``: delegate to the integration runtime.

This package exports:

- ``Capability``: protocol for async capability execution.
- ``CapabilityRegistry``: action type → capability mapping.
- ``ActionDeps``/``CapabilityContext``/``CapabilityResult``: execution input/output models.
"""

from .base import ActionDeps, Capability, CapabilityContext, CapabilityResult
from .builtin import InstallSkillCapability, IntegrationCapability, ShellCapability
from .registry import CapabilityRegistry, build_default_registry

__all__ = [
    "ActionDeps",
    "Capability",
    "CapabilityContext",
    "CapabilityResult",
    "CapabilityRegistry",
    "InstallSkillCapability",
    "IntegrationCapability",
    "ShellCapability",
    "build_default_registry",
]
