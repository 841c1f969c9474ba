"""
Memory event entity.

Records the outcome of every best-effort long-term memory write so failures
are visible in the overview without ever reaching the user.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field

from ..base import Base, utc_now


class MemoryEventStatus(str, Enum):
    saved = "saved"
    failed = "failed"


class MemoryEvent(Base, table=True):
    """Table: memory_events"""

    __tablename__ = "memory_events"
    __table_args__ = ({"extend_existing": True},)

    id: Optional[int] = Field(default=None, primary_key=True)
    session_key: str = Field(index=True)
    status: MemoryEventStatus
    detail: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now, index=True)
