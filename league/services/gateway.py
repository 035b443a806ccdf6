"""Guild data from a connected discord.py bot's cache (members + presences intents)."""
from __future__ import annotations

import logging
from typing import Optional

import discord

from league.checks import _get_role_ids
from league.services.guild import GuildMember, GuildRole

logger = logging.getLogger("league.gateway")


def member_from_discord(member: discord.Member, with_presence: bool = True) -> GuildMember:
    return GuildMember(
        id=str(member.id),
        username=member.name,
        global_name=member.global_name,
        nick=member.nick,
        roles=tuple(str(r) for r in _get_role_ids(member)),
        presence=str(member.status) if with_presence else None,
    )


class GatewayGuildSource:
    """GuildDataSource backed by a running bot. Presence is only real with the presences intent."""

    def __init__(self, client: discord.Client):
        self.client = client

    @property
    def _has_presences(self) -> bool:
        return bool(self.client.intents.presences)

    async def _guild(self, guild_id: str) -> discord.Guild:
        guild = self.client.get_guild(int(guild_id))
        if guild is None:
            guild = await self.client.fetch_guild(int(guild_id))
        return guild

    async def fetch_members(self, guild_id: str) -> list[GuildMember]:
        guild = await self._guild(guild_id)
        if not guild.chunked:
            try:
                await guild.chunk()
            except discord.ClientException:
                logger.warning("Could not chunk guild %s; using REST member list", guild_id)
                members = [m async for m in guild.fetch_members(limit=None)]
                # REST members never carry presence
                return [member_from_discord(m, with_presence=False) for m in members]
        return [member_from_discord(m, self._has_presences) for m in guild.members]

    async def fetch_roles(self, guild_id: str) -> dict[str, GuildRole]:
        guild = await self._guild(guild_id)
        roles = guild.roles or await guild.fetch_roles()
        return {str(r.id): GuildRole(id=str(r.id), name=r.name) for r in roles}

    async def fetch_presence(self, guild_id: str, member_id: str) -> Optional[str]:
        if not self._has_presences:
            return None
        guild = await self._guild(guild_id)
        member = guild.get_member(int(member_id))
        return str(member.status) if member else None
