"""Payment record model."""
from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from league.models.base import Base

PAYMENT_COMPLETE = "COMPLETE"


class LeaguePayment(Base):
    """Checkout record linked from a registration row."""

    __tablename__ = "league_payments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)  # PENDING, COMPLETE, EXPIRED, ...
