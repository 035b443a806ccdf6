"""Player-event registration model."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from league.models.base import Base

# Registration status
PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
CANCELLED = "CANCELLED"
WAITLISTED = "WAITLISTED"

# Rows a check-in run may touch
CHECKIN_ELIGIBLE_STATUSES = (PENDING, CONFIRMED)

# Payment status on the registration row
PAYMENT_PAID = "PAID"
PAYMENT_FREE = "FREE"
PAYMENT_PENDING = "PENDING"
SETTLED_PAYMENT_STATUSES = (PAYMENT_PAID, PAYMENT_FREE)


class LeagueEventPlayer(Base):
    """A user's registration for one event, keyed by (user_id, event_id)."""

    __tablename__ = "league_event_players"
    __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_event_player"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(ForeignKey("league_events.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), default=PENDING)
    payment_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    league_payment_id: Mapped[Optional[str]] = mapped_column(ForeignKey("league_payments.id"), nullable=True)
    decklist: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # free text; blank = not submitted
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    event: Mapped["LeagueEvent"] = relationship("LeagueEvent", back_populates="players")
