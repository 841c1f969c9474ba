"""
Session and message entities.

One session exists per (channel, sender_id). Messages are append-only and
ordered by their autoincrement id.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, utc_now


class MessageDirection(str, Enum):
    """Whether a message came from the user or was sent by the assistant."""

    inbound = "inbound"
    outbound = "outbound"


class ChatSession(Base, table=True):
    """Conversation with one sender on one channel.

    Table: sessions
    """

    __tablename__ = "sessions"
    __table_args__ = (
        UniqueConstraint("channel", "sender_id", name="uq_sessions_channel_sender"),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    channel: str = Field(index=True)
    sender_id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, index=True)

    def __repr__(self) -> str:
        return f"ChatSession(id={self.id}, channel={self.channel}, sender_id={self.sender_id})"


class ChatMessage(Base, table=True):
    """Single inbound or outbound message.

    Table: messages
    """

    __tablename__ = "messages"
    __table_args__ = ({"extend_existing": True},)

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="sessions.id", index=True)
    direction: MessageDirection
    content: str
    created_at: datetime = Field(default_factory=utc_now)

    def __repr__(self) -> str:
        return f"ChatMessage(id={self.id}, direction={self.direction}, session_id={self.session_id})"
