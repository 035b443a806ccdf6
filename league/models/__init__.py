"""Database models."""
from league.models.base import Base, init_db
from league.models.event import LeagueEvent
from league.models.event_player import LeagueEventPlayer
from league.models.payment import LeaguePayment
from league.models.user import AppUser, LeaguePlayer

__all__ = [
    "Base",
    "LeagueEvent",
    "LeagueEventPlayer",
    "LeaguePayment",
    "LeaguePlayer",
    "AppUser",
    "init_db",
]
