"""Data access for check-in: events, rosters, registration rows and Discord handles."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from league.models import AppUser, LeagueEvent, LeagueEventPlayer, LeaguePayment, LeaguePlayer
from league.models.base import async_session_factory
from league.models.event_player import CHECKIN_ELIGIBLE_STATUSES, CONFIRMED

logger = logging.getLogger("league.storage")

# Where a user's Discord handle is looked up, in order; first non-empty wins
DISCORD_HANDLE_SOURCES = (LeaguePlayer, AppUser)


@dataclass(frozen=True)
class EventRow:
    id: str
    title: str
    status: str


@dataclass(frozen=True)
class PlayerRow:
    user_id: str
    event_id: str
    status: str
    payment_status: Optional[str] = None
    league_payment_id: Optional[str] = None
    decklist: Optional[str] = None


def _player_row(p: LeagueEventPlayer) -> PlayerRow:
    return PlayerRow(
        user_id=p.user_id,
        event_id=p.event_id,
        status=p.status,
        payment_status=p.payment_status,
        league_payment_id=p.league_payment_id,
        decklist=p.decklist,
    )


class CheckinStore(Protocol):
    """What the check-in engine reads and writes. Lookups return None when the row is absent."""

    async def get_event(self, event_id: str) -> Optional[EventRow]:
        ...

    async def get_roster(self, event_id: str, statuses: tuple[str, ...] = CHECKIN_ELIGIBLE_STATUSES) -> list[PlayerRow]:
        ...

    async def get_player_row(self, user_id: str, event_id: str) -> Optional[PlayerRow]:
        ...

    async def get_payment_record_status(self, payment_id: str) -> Optional[str]:
        ...

    async def get_discord_handle(self, user_id: str) -> Optional[str]:
        ...

    async def update_player_status(self, user_id: str, event_id: str) -> bool:
        ...


class SQLCheckinStore:
    """CheckinStore over the SQLAlchemy models. One short session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory or async_session_factory

    async def get_event(self, event_id: str) -> Optional[EventRow]:
        async with self._session_factory() as session:
            event = await session.get(LeagueEvent, event_id)
            if not event:
                return None
            return EventRow(id=event.id, title=event.event_title, status=event.status)

    async def get_roster(self, event_id: str, statuses: tuple[str, ...] = CHECKIN_ELIGIBLE_STATUSES) -> list[PlayerRow]:
        """Registrations for the event with one of `statuses`, in registration order."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(LeagueEventPlayer)
                .where(
                    LeagueEventPlayer.event_id == event_id,
                    LeagueEventPlayer.status.in_(statuses),
                )
                .order_by(LeagueEventPlayer.created_at, LeagueEventPlayer.id)
            )
            return [_player_row(p) for p in result.scalars().all()]

    async def get_player_row(self, user_id: str, event_id: str) -> Optional[PlayerRow]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(LeagueEventPlayer).where(
                    LeagueEventPlayer.user_id == user_id,
                    LeagueEventPlayer.event_id == event_id,
                )
            )
            player = result.scalar_one_or_none()
            return _player_row(player) if player else None

    async def get_payment_record_status(self, payment_id: str) -> Optional[str]:
        async with self._session_factory() as session:
            payment = await session.get(LeaguePayment, payment_id)
            return payment.status if payment else None

    async def get_discord_handle(self, user_id: str) -> Optional[str]:
        async with self._session_factory() as session:
            for model in DISCORD_HANDLE_SOURCES:
                profile = await session.get(model, user_id)
                handle = (profile.discord_handle or "").strip() if profile else ""
                if handle:
                    logger.debug("Discord handle for %s from %s", user_id, model.__tablename__)
                    return handle
        return None

    async def update_player_status(self, user_id: str, event_id: str) -> bool:
        """Set status CONFIRMED. Only PENDING/CONFIRMED rows move; returns whether a row was written."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(LeagueEventPlayer)
                .where(
                    LeagueEventPlayer.user_id == user_id,
                    LeagueEventPlayer.event_id == event_id,
                    LeagueEventPlayer.status.in_(CHECKIN_ELIGIBLE_STATUSES),
                )
                .values(status=CONFIRMED, updated_at=datetime.utcnow())
            )
            await session.commit()
            updated = result.rowcount > 0
        if not updated:
            logger.warning("No check-in eligible row for user %s in event %s", user_id, event_id)
        return updated
