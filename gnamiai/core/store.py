from __future__ import annotations

"""Gateway store.

``GatewayStore`` is the async persistence facade used by the turn engine, the
HTTP API and the pairing approval flow. It wraps an ``async_sessionmaker``
over the SQLModel entities in ``gnamiai.core.database.entities``.

Transaction model
-----------------

Each method opens an ``AsyncSession``, performs its operation and commits.
There is no transaction spanning a whole turn: an inbound message may be
persisted without its outbound reply if the process dies in between.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .database.base import utc_now
from .database.entities import (
    ChatMessage,
    ChatSession,
    MemoryEvent,
    MemoryEventStatus,
    MessageDirection,
    Pairing,
)

logger = logging.getLogger(__name__)


def generate_pairing_code() -> str:
    """Return a random six-digit code in ``[100000, 999999]``."""
    return str(100000 + secrets.randbelow(900000))


class LastMemoryEvent(BaseModel):
    status: MemoryEventStatus
    detail: Optional[str] = None
    created_at: datetime


class OverviewStats(BaseModel):
    """Aggregated counters shown on the gateway overview."""

    sessions: int = 0
    messages: int = 0
    pairings_approved: int = 0
    pairings_pending: int = 0
    memory_saved: int = 0
    memory_failed: int = 0
    last_memory_saved_at: Optional[datetime] = None
    last_memory_event: Optional[LastMemoryEvent] = None
    by_channel: Dict[str, int] = Field(default_factory=dict)


@dataclass(frozen=True)
class GatewayStore:
    """SQL-backed store for pairings, sessions, messages and memory events."""

    session_factory: async_sessionmaker[AsyncSession]

    # ------------------------------------------------------------------
    # Pairings
    # ------------------------------------------------------------------

    async def upsert_pairing(self, channel: str, sender_id: str) -> Pairing:
        """Return the pairing for a sender, creating a pending one if absent.

        The code of an existing pairing is never regenerated.
        """
        async with self.session_factory() as s:
            existing = await s.get(Pairing, (channel, sender_id))
            if existing is not None:
                return existing
            row = Pairing(channel=channel, sender_id=sender_id, approved=False, code=generate_pairing_code())
            s.add(row)
            try:
                await s.commit()
            except IntegrityError:
                # Another writer created it first; return theirs.
                await s.rollback()
                winner = await s.get(Pairing, (channel, sender_id))
                if winner is None:
                    raise
                return winner
            logger.info(f"Created pending pairing for {channel}:{sender_id}")
            return row

    async def approve_pairing(self, channel: str, code: str) -> bool:
        """Approve the pairing on ``channel`` whose code matches.

        Returns:
            True if a pairing was approved, False if no pairing matched.
        """
        async with self.session_factory() as s:
            result = await s.execute(
                update(Pairing).where(Pairing.channel == channel, Pairing.code == code).values(approved=True)
            )
            await s.commit()
            approved = (result.rowcount or 0) > 0
        if approved:
            logger.info(f"Approved pairing on {channel} with code {code}")
        return approved

    async def list_pairings(self, *, approved: Optional[bool] = None) -> List[Pairing]:
        async with self.session_factory() as s:
            stmt = select(Pairing)
            if approved is not None:
                stmt = stmt.where(Pairing.approved == approved)
            result = await s.execute(stmt.order_by(Pairing.created_at.desc()))
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Sessions and messages
    # ------------------------------------------------------------------

    async def get_or_create_session(self, channel: str, sender_id: str) -> ChatSession:
        """Return the sender's session, refreshing ``updated_at`` or creating it."""
        async with self.session_factory() as s:
            row = await self._find_session(s, channel, sender_id)
            if row is not None:
                row.updated_at = utc_now()
                await s.commit()
                return row
            row = ChatSession(channel=channel, sender_id=sender_id)
            s.add(row)
            try:
                await s.commit()
            except IntegrityError:
                await s.rollback()
                row = await self._find_session(s, channel, sender_id)
                if row is None:
                    raise
            return row

    @staticmethod
    async def _find_session(s: AsyncSession, channel: str, sender_id: str) -> Optional[ChatSession]:
        result = await s.execute(
            select(ChatSession).where(ChatSession.channel == channel, ChatSession.sender_id == sender_id)
        )
        return result.scalars().first()

    async def get_session(self, session_id: int) -> Optional[ChatSession]:
        async with self.session_factory() as s:
            return await s.get(ChatSession, session_id)

    async def add_message(self, session_id: int, direction: MessageDirection, content: str) -> ChatMessage:
        async with self.session_factory() as s:
            row = ChatMessage(session_id=session_id, direction=direction, content=content)
            s.add(row)
            await s.commit()
            return row

    async def get_recent_messages(self, session_id: int, limit: int = 20) -> List[ChatMessage]:
        """Return the newest ``limit`` messages of a session, oldest first."""
        async with self.session_factory() as s:
            result = await s.execute(
                select(ChatMessage)
                .where(ChatMessage.session_id == session_id)
                .order_by(ChatMessage.id.desc())
                .limit(limit)
            )
            rows = list(result.scalars().all())
        rows.reverse()
        return rows

    async def list_sessions(self, limit: int = 100) -> List[ChatSession]:
        """Return sessions, most recently active first."""
        async with self.session_factory() as s:
            result = await s.execute(select(ChatSession).order_by(ChatSession.updated_at.desc()).limit(limit))
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Memory events
    # ------------------------------------------------------------------

    async def add_memory_event(
        self, session_key: str, status: MemoryEventStatus, detail: Optional[str] = None
    ) -> MemoryEvent:
        async with self.session_factory() as s:
            row = MemoryEvent(session_key=session_key, status=status, detail=detail)
            s.add(row)
            await s.commit()
            return row

    # ------------------------------------------------------------------
    # Overview
    # ------------------------------------------------------------------

    async def overview_stats(self) -> OverviewStats:
        async with self.session_factory() as s:
            sessions = await s.scalar(select(func.count()).select_from(ChatSession))
            messages = await s.scalar(select(func.count()).select_from(ChatMessage))
            approved = await s.scalar(select(func.count()).select_from(Pairing).where(Pairing.approved.is_(True)))
            pending = await s.scalar(select(func.count()).select_from(Pairing).where(Pairing.approved.is_(False)))
            saved = await s.scalar(
                select(func.count()).select_from(MemoryEvent).where(MemoryEvent.status == MemoryEventStatus.saved)
            )
            failed = await s.scalar(
                select(func.count()).select_from(MemoryEvent).where(MemoryEvent.status == MemoryEventStatus.failed)
            )
            last_saved_at = await s.scalar(
                select(func.max(MemoryEvent.created_at)).where(MemoryEvent.status == MemoryEventStatus.saved)
            )
            last_event = (
                (await s.execute(select(MemoryEvent).order_by(MemoryEvent.id.desc()).limit(1))).scalars().first()
            )
            by_channel_rows = await s.execute(
                select(ChatSession.channel, func.count()).group_by(ChatSession.channel).order_by(func.count().desc())
            )

        return OverviewStats(
            sessions=sessions or 0,
            messages=messages or 0,
            pairings_approved=approved or 0,
            pairings_pending=pending or 0,
            memory_saved=saved or 0,
            memory_failed=failed or 0,
            last_memory_saved_at=last_saved_at,
            last_memory_event=(
                LastMemoryEvent(status=last_event.status, detail=last_event.detail, created_at=last_event.created_at)
                if last_event is not None
                else None
            ),
            by_channel={channel: count for channel, count in by_channel_rows.all()},
        )
