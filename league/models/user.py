"""User profile models. Both carry an optional Discord handle."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from league.models.base import Base


class LeaguePlayer(Base):
    """League profile. Its Discord handle takes precedence over the app profile's."""

    __tablename__ = "league_players"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    discord_handle: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class AppUser(Base):
    """Site-wide user profile."""

    __tablename__ = "app_users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    discord_handle: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
