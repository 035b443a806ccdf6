"""Discord presence resolution: find a player in the guild roster, check role and online status."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Sequence

import config
from league.services import fallback
from league.services.discord_api import DiscordAPIService
from league.services.guild import (
    PRESENT_STATUSES,
    UNKNOWN,
    GuildDataSource,
    GuildMember,
    GuildRole,
    PresenceConfigError,
)

logger = logging.getLogger("league.presence")


@dataclass(frozen=True)
class PresenceResult:
    target: str
    username: str
    is_member: bool
    has_role: bool
    is_present: bool
    status: str = UNKNOWN
    error: Optional[str] = None


def normalize(value: object) -> str:
    return ("" if value is None else str(value)).strip().lower()


def member_matches_name(member: GuildMember, target: str) -> bool:
    """True if target equals the member's username, nickname or global name (case-insensitive)."""
    wanted = normalize(target)
    candidates = {normalize(member.username), normalize(member.nick), normalize(member.global_name)}
    candidates.discard("")
    return wanted in candidates


def find_members(members: Iterable[GuildMember], target: str, use_id: bool = False) -> list[GuildMember]:
    """Every member matching target, in roster order."""
    if use_id:
        return [m for m in members if m.id == target.strip()]
    return [m for m in members if member_matches_name(m, target)]


def find_member(members: Iterable[GuildMember], target: str, use_id: bool = False) -> Optional[GuildMember]:
    """First member matching target in roster order."""
    matches = find_members(members, target, use_id)
    return matches[0] if matches else None


def display_name(member: GuildMember, target: str) -> str:
    return member.global_name or member.nick or member.username or target


def member_has_matching_role(
    member: GuildMember,
    role_ids: set[str],
    role_names: set[str],
    guild_roles: dict[str, GuildRole],
) -> bool:
    """Role match by ID or by (normalized) name. No roles configured = no match."""
    if not role_ids and not role_names:
        return False
    for role_id in member.roles:
        if role_id in role_ids:
            return True
        role = guild_roles.get(role_id)
        if role is not None and normalize(role.name) in role_names:
            return True
    return False


def is_present(status: Optional[str]) -> bool:
    return normalize(status) in PRESENT_STATUSES


PresenceLookup = Callable[["PresenceResolver", GuildMember], Awaitable[Optional[str]]]


async def embedded_presence(resolver: "PresenceResolver", member: GuildMember) -> Optional[str]:
    """Presence that came with the roster fetch."""
    if member.presence and member.presence != UNKNOWN:
        return member.presence
    return None


async def fetched_presence(resolver: "PresenceResolver", member: GuildMember) -> Optional[str]:
    """Per-member presence fetch. Failures degrade to unknown."""
    fetch = getattr(resolver.source, "fetch_presence", None)
    if fetch is None:
        return None
    logger.debug("No presence in roster for %s, trying fallback fetch", member.username)
    status = fallback.degrade(
        fallback.PRESENCE_FALLBACK,
        await fallback.attempt(fetch(resolver.guild_id, member.id)),
    )
    return None if status == UNKNOWN else status


# Tried in order; the first non-empty status wins
PRESENCE_LOOKUPS: tuple[PresenceLookup, ...] = (embedded_presence, fetched_presence)


class PresenceResolver:
    """Resolves targets against one guild for one set of required roles."""

    def __init__(
        self,
        source: GuildDataSource,
        guild_id: str,
        *,
        role_names: Iterable[str] = (),
        role_ids: Iterable[str] = (),
        use_id: bool = False,
        presence_lookups: Sequence[PresenceLookup] = PRESENCE_LOOKUPS,
    ):
        if not guild_id:
            raise PresenceConfigError("Missing guild ID. Provide guild_id or set DISCORD_GUILD_ID.")
        self.source = source
        self.guild_id = str(guild_id)
        self.role_names = {normalize(n) for n in role_names if normalize(n)}
        self.role_ids = {str(r).strip() for r in role_ids if str(r).strip()}
        self.use_id = use_id
        self.presence_lookups = tuple(presence_lookups)

    async def fetch_snapshot(self) -> tuple[list[GuildMember], dict[str, GuildRole]]:
        """Members and roles, fetched together. Errors propagate."""
        members, roles = await asyncio.gather(
            self.source.fetch_members(self.guild_id),
            self.source.fetch_roles(self.guild_id),
        )
        return members, roles

    async def presence_status(self, member: GuildMember) -> str:
        for lookup in self.presence_lookups:
            status = await lookup(self, member)
            if status:
                return normalize(status)
        return UNKNOWN

    async def resolve_target(
        self,
        members: Sequence[GuildMember],
        roles: dict[str, GuildRole],
        target: str,
    ) -> PresenceResult:
        """Resolve one target against an already fetched roster."""
        member = find_member(members, target, self.use_id)
        if member is None:
            return PresenceResult(target=target, username=target, is_member=False, has_role=False, is_present=False)
        status = await self.presence_status(member)
        username = display_name(member, target)
        logger.debug("Discord presence for %s: %s", username, status)
        return PresenceResult(
            target=target,
            username=username,
            is_member=True,
            has_role=member_has_matching_role(member, self.role_ids, self.role_names, roles),
            is_present=is_present(status),
            status=status,
        )

    async def _resolve_isolated(self, members, roles, target: str) -> PresenceResult:
        try:
            return await self.resolve_target(members, roles, target)
        except Exception as e:
            logger.exception("Error resolving presence for %s", target)
            return PresenceResult(
                target=target, username=target, is_member=False, has_role=False, is_present=False, error=str(e)
            )

    async def resolve_against(
        self,
        members: Sequence[GuildMember],
        roles: dict[str, GuildRole],
        targets: Sequence[str],
    ) -> list[PresenceResult]:
        """Resolve targets concurrently against one snapshot. Output order matches input order."""
        results = await asyncio.gather(*(self._resolve_isolated(members, roles, t) for t in targets))
        return list(results)

    async def resolve_all(self, targets: Sequence[str]) -> list[PresenceResult]:
        """Fetch the roster once, then resolve every target against it."""
        members, roles = await self.fetch_snapshot()
        return await self.resolve_against(members, roles, targets)

    async def resolve(self, target: str) -> PresenceResult:
        return (await self.resolve_all([target]))[0]


def required_role_names(role_names: Optional[Iterable[str]] = None) -> list[str]:
    """Explicit role names, else the configured DISCORD_ROLE_NAME."""
    if role_names is not None:
        return list(role_names)
    return [config.DISCORD_ROLE_NAME] if config.DISCORD_ROLE_NAME else []


async def validate_players_presence(
    targets: Sequence[str],
    *,
    token: Optional[str] = None,
    guild_id: Optional[str] = None,
    role_names: Optional[Iterable[str]] = None,
    role_ids: Optional[Iterable[str]] = None,
    use_id: bool = False,
    source: Optional[GuildDataSource] = None,
) -> list[PresenceResult]:
    """Resolve targets using config defaults for anything not given.

    Opens (and closes) a REST source unless one is passed in.
    """
    token = token or config.DISCORD_BOT_TOKEN
    guild_id = guild_id or config.DISCORD_GUILD_ID
    if source is None and not token:
        raise PresenceConfigError("Missing Discord bot token. Provide token or set DISCORD_BOT_TOKEN.")
    if not guild_id:
        raise PresenceConfigError("Missing guild ID. Provide guild_id or set DISCORD_GUILD_ID.")
    if not targets:
        raise ValueError("Provide at least one target identifier (username or ID).")

    options = dict(
        role_names=required_role_names(role_names),
        role_ids=config.DISCORD_ROLE_IDS if role_ids is None else role_ids,
        use_id=use_id,
    )
    if source is not None:
        return await PresenceResolver(source, guild_id, **options).resolve_all(targets)
    async with DiscordAPIService(token) as api:
        return await PresenceResolver(api, guild_id, **options).resolve_all(targets)


async def validate_player_presence(target: str, **options) -> PresenceResult:
    return (await validate_players_presence([target], **options))[0]
