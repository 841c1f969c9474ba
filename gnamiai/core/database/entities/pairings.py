"""
Pairing entity.

A pairing binds one sender on one channel to an approval state and a
six-digit code. The row is created on the first inbound message of an unknown
sender and its code never changes afterwards.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field

from ..base import Base, utc_now


class Pairing(Base, table=True):
    """Approval gate for a (channel, sender_id) pair.

    Table: pairings
    """

    __tablename__ = "pairings"
    __table_args__ = ({"extend_existing": True},)

    channel: str = Field(primary_key=True)
    sender_id: str = Field(primary_key=True)
    approved: bool = Field(default=False)
    code: str = Field(index=True, description="Six-digit approval code")
    created_at: datetime = Field(default_factory=utc_now)

    def __repr__(self) -> str:
        return f"Pairing(channel={self.channel}, sender_id={self.sender_id}, approved={self.approved})"
