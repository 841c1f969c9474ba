"""Error types for the GnamiAI gateway.

Defines a small hierarchy of exceptions raised by action executors, the
integration runtime, the remote debugging session and the model provider.
Every error's ``str()`` is safe to show to the user; the turn engine turns
uncaught ones into a single ``GnamiAI error: <message>`` reply.
"""

from __future__ import annotations


class GnamiError(Exception):
    """Base error for all GnamiAI exceptions."""


class ActionError(GnamiError):
    """Raised when an agent action cannot be executed."""


class ShellTimeoutError(ActionError):
    """Raised when a shell action exceeds its timeout and has been killed."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Shell command timed out after {timeout_ms}ms")


class SkillNameError(ActionError):
    """Raised when a skill name does not produce a usable slug."""

    def __init__(self) -> None:
        super().__init__("Skill name must include letters or numbers.")


class IntegrationError(GnamiError):
    """Base error for integration adapters and the integration runtime."""


class IntegrationNotFoundError(IntegrationError):
    def __init__(self, app: str) -> None:
        super().__init__(f'Integration adapter not found for "{app}".')


class IntegrationDisabledError(IntegrationError):
    def __init__(self, app: str) -> None:
        super().__init__(f'Integration "{app}" is disabled in config.')


class IntegrationNotConfiguredError(IntegrationError):
    def __init__(self, app: str) -> None:
        super().__init__(f'Integration "{app}" is not configured.')


class CdpError(IntegrationError):
    """Base error for the remote debugging (CDP) session."""


class CdpTimeoutError(CdpError):
    """Raised when a CDP command gets no response in time."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"CDP command timed out: {method}")


class CdpCommandError(CdpError):
    """Raised when the browser answers a command with an error frame."""


class CdpSessionClosedError(CdpError):
    """Raised for calls still pending (or issued) after the session closed."""

    def __init__(self) -> None:
        super().__init__("CDP session closed.")


class ModelProviderError(GnamiError):
    """Raised when the model provider cannot produce a response."""


class MemoryBackendError(GnamiError):
    """Raised when the long-term memory backend rejects a request."""


class WorkspaceDocError(GnamiError):
    """Raised for unknown workspace document names."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown workspace doc: {name}")
