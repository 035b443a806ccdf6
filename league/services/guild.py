"""Guild roster types shared by the REST and gateway guild data sources."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

# Discord presence statuses. "unknown" = no presence data available.
ONLINE = "online"
IDLE = "idle"
DND = "dnd"
OFFLINE = "offline"
INVISIBLE = "invisible"
UNKNOWN = "unknown"

PRESENCE_STATUSES = (ONLINE, IDLE, DND, OFFLINE, INVISIBLE)
PRESENT_STATUSES = frozenset({ONLINE, IDLE, DND})


class PresenceConfigError(ValueError):
    """Bot credential or guild ID missing. A deployment error, never degraded."""


@dataclass(frozen=True)
class GuildRole:
    id: str
    name: str


@dataclass(frozen=True)
class GuildMember:
    """A guild member snapshot. `presence` is None when the roster carried no presence."""

    id: str
    username: str
    global_name: Optional[str] = None
    nick: Optional[str] = None
    roles: tuple[str, ...] = field(default_factory=tuple)
    presence: Optional[str] = None


def presence_from_payload(payload: Any) -> Optional[str]:
    """Extract a status string from a presence payload ({"status": "..."} or a bare string)."""
    if isinstance(payload, dict):
        payload = payload.get("status")
    if isinstance(payload, str) and payload:
        return payload.lower()
    return None


def member_from_payload(data: dict) -> GuildMember:
    """Build a GuildMember from a Discord guild-member JSON object."""
    user = data.get("user") or {}
    return GuildMember(
        id=str(user.get("id", "")),
        username=user.get("username") or "",
        global_name=user.get("global_name") or user.get("globalName"),
        nick=data.get("nick"),
        roles=tuple(str(r) for r in data.get("roles") or ()),
        presence=presence_from_payload(data.get("presence")),
    )


def role_from_payload(data: dict) -> GuildRole:
    return GuildRole(id=str(data["id"]), name=data.get("name") or "")


@runtime_checkable
class GuildDataSource(Protocol):
    """Where the presence resolver gets guild data from.

    Failures in fetch_members / fetch_roles are fatal to a resolution batch.
    fetch_presence is an optional per-member fallback; sources that cannot
    provide one return None.
    """

    async def fetch_members(self, guild_id: str) -> list[GuildMember]:
        ...

    async def fetch_roles(self, guild_id: str) -> dict[str, GuildRole]:
        ...

    async def fetch_presence(self, guild_id: str, member_id: str) -> Optional[str]:
        ...


@dataclass(frozen=True)
class DiscordPresence:
    """The Discord half of a check-in decision."""

    is_member: bool
    has_role: bool
    is_present: bool
    username: Optional[str] = None


# Not in the guild, no role, offline
NO_PRESENCE = DiscordPresence(is_member=False, has_role=False, is_present=False)
