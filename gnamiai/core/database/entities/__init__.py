"""Gateway table entities.

- ``pairings``: per (channel, sender) approval gate.
- ``sessions`` / ``messages``: conversation history.
- ``memory_events``: audit trail of best-effort long-term memory writes.
"""

from .memory_events import MemoryEvent, MemoryEventStatus
from .pairings import Pairing
from .sessions import ChatMessage, ChatSession, MessageDirection

__all__ = [
    "ChatMessage",
    "ChatSession",
    "MemoryEvent",
    "MemoryEventStatus",
    "MessageDirection",
    "Pairing",
]
