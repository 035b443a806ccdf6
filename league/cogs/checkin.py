"""Check-in cog - /checkin player, /checkin event, /presence."""
from __future__ import annotations

from typing import Optional

import discord
from discord import app_commands

import config
from league.checks import mod_or_higher
from league.services.checkin import BulkCheckinResult, CheckinResult, CheckinService
from league.services.gateway import GatewayGuildSource
from league.services.presence import PresenceResolver, required_role_names

checkin_group = app_commands.Group(name="checkin", description="Event check-in (Moderator+)")

MAX_EMBED_LINES = 25


def _service(interaction: discord.Interaction) -> CheckinService:
    return CheckinService.from_config(GatewayGuildSource(interaction.client))


def _yes_no(value: bool) -> str:
    return "✅" if value else "❌"


def _checkin_embed(result: CheckinResult) -> discord.Embed:
    embed = discord.Embed(
        title="Checked in" if result.success else "Check-in failed",
        description=result.message,
        color=discord.Color.green() if result.success else discord.Color.red(),
    )
    details = result.details
    if details:
        presence = details.discord_presence
        embed.add_field(name="Paid", value=_yes_no(details.has_paid))
        embed.add_field(name="Decklist", value=_yes_no(details.has_decklist))
        embed.add_field(name="In server", value=_yes_no(presence.is_member))
        embed.add_field(name="Role", value=_yes_no(presence.has_role))
        embed.add_field(name="Online", value=_yes_no(presence.is_present))
        embed.add_field(name="Status updated", value=_yes_no(details.status_updated))
        if presence.username:
            embed.set_footer(text=f"Discord: {presence.username}")
    if result.error:
        embed.add_field(name="Error", value=result.error[:1024], inline=False)
    return embed


def _bulk_embed(result: BulkCheckinResult) -> discord.Embed:
    embed = discord.Embed(
        title=f"Event check-in: {result.event_id}",
        description=result.message,
        color=discord.Color.green() if result.success else discord.Color.red(),
    )
    lines = [
        f"{_yes_no(r.success)} `{r.user_id}` {r.previous_status} → {r.new_status}: {r.message}"
        for r in result.results[:MAX_EMBED_LINES]
    ]
    if len(result.results) > MAX_EMBED_LINES:
        lines.append(f"…and {len(result.results) - MAX_EMBED_LINES} more")
    if lines:
        embed.add_field(name="Players", value="\n".join(lines)[:1024], inline=False)
    if result.error:
        embed.add_field(name="Error", value=result.error[:1024], inline=False)
    return embed


@checkin_group.command(name="player", description="Check in one player for an event")
@app_commands.describe(
    user_id="League user ID",
    event_id="League event ID",
    discord_handle="Discord name to check instead of the one on record",
    force="Confirm even if conditions are not met",
)
@mod_or_higher()
async def checkin_player(
    interaction: discord.Interaction,
    user_id: str,
    event_id: str,
    discord_handle: Optional[str] = None,
    force: bool = False,
) -> None:
    await interaction.response.defer(ephemeral=True)
    result = await _service(interaction).perform_checkin(
        user_id, event_id, discord_handle=discord_handle, force=force
    )
    await interaction.followup.send(embed=_checkin_embed(result), ephemeral=True)


@checkin_group.command(name="event", description="Check in every registered player for an event")
@app_commands.describe(event_id="League event ID", force="Run even if registration is not closed")
@mod_or_higher()
async def checkin_event(interaction: discord.Interaction, event_id: str, force: bool = False) -> None:
    await interaction.response.defer(ephemeral=True)  # one Discord lookup per player; can be slow
    result = await _service(interaction).perform_bulk_checkin(event_id, force=force)
    await interaction.followup.send(embed=_bulk_embed(result), ephemeral=True)


@app_commands.command(description="Show whether a member is in the server, has the player role and is online")
@app_commands.describe(target="Username, display name or user ID", role="Role name to check (default: configured)")
@mod_or_higher()
async def presence(interaction: discord.Interaction, target: str, role: Optional[str] = None) -> None:
    await interaction.response.defer(ephemeral=True)
    resolver = PresenceResolver(
        GatewayGuildSource(interaction.client),
        str(interaction.guild_id or config.DISCORD_GUILD_ID),
        role_names=required_role_names([role] if role else None),
        role_ids=config.DISCORD_ROLE_IDS,
        use_id=target.strip().isdigit(),
    )
    r = await resolver.resolve(target)
    await interaction.followup.send(
        f"**{r.username}** | member: {_yes_no(r.is_member)} role: {_yes_no(r.has_role)} "
        f"online: {_yes_no(r.is_present)} ({r.status})",
        ephemeral=True,
    )
