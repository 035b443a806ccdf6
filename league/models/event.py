"""League event model."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from league.models.base import Base

# Event lifecycle
REGISTRATION_OPEN = "REGISTRATION_OPEN"
REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
IN_PROGRESS = "IN_PROGRESS"
COMPLETED = "COMPLETED"


class LeagueEvent(Base):
    """A league event players register for. Check-in runs once registration closes."""

    __tablename__ = "league_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    event_title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default=REGISTRATION_OPEN)
    event_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    players = relationship(
        "LeagueEventPlayer", back_populates="event", cascade="all, delete-orphan"
    )
