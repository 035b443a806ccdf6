"""Permission checks for check-in slash commands."""
from __future__ import annotations

import discord
from discord import app_commands

import config


def _get_role_ids(member: discord.Member) -> set[int]:
    """Member's role IDs. Reads raw _roles too, since member.roles drops IDs missing from the guild cache."""
    ids = set()
    raw = getattr(member, "_roles", None)
    if raw is not None:
        ids.update(int(r) for r in raw)
    for r in member.roles:
        ids.add(r.id)
    ids.discard(member.guild.id)  # @everyone
    return ids


def _get_role_names(member: discord.Member) -> set[str]:
    """Member's role names, lowercased."""
    names = {r.name.lower() for r in member.roles}
    guild = member.guild
    for role_id in _get_role_ids(member):
        role = guild.get_role(role_id)
        if role is not None:
            names.add(role.name.lower())
    return names


async def _get_member_with_roles(interaction: discord.Interaction) -> discord.Member | None:
    """Invoking member, re-fetched over REST if the gateway payload carried no roles."""
    if not interaction.guild or not isinstance(interaction.user, discord.Member):
        return None
    member = interaction.user
    if not _get_role_ids(member):
        try:
            member = await interaction.guild.fetch_member(interaction.user.id)
        except discord.NotFound:
            return None
    return member


def is_organizer(member: discord.Member) -> bool:
    """Server admin, listed user, or holder of a moderator/admin role (by ID or name)."""
    if member.guild_permissions.administrator:
        return True
    if member.id in (config.MODERATOR_USER_IDS | config.ADMIN_USER_IDS):
        return True
    by_id = bool(_get_role_ids(member) & (config.MODERATOR_ROLE_IDS | config.ADMIN_ROLE_IDS))
    by_name = bool(_get_role_names(member) & (config.MODERATOR_ROLE_NAMES | config.ADMIN_ROLE_NAMES))
    return by_id or by_name


def mod_or_higher():
    """Check that the user may run check-ins."""

    async def predicate(interaction: discord.Interaction) -> bool:
        member = await _get_member_with_roles(interaction)
        return member is not None and is_organizer(member)

    return app_commands.check(predicate)
