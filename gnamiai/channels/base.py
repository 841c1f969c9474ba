"""Channel-agnostic inbound message type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

Reply = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class InboundMessage:
    """One message received on a channel.

    ``reply`` delivers text back to the same sender on the same channel.
    """

    channel: str
    sender_id: str
    content: str
    reply: Reply

    @property
    def user_scoped_id(self) -> str:
        return f"{self.channel}:{self.sender_id}"


MessageHandler = Callable[[InboundMessage], Awaitable[None]]
