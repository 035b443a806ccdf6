"""Discord bot entry point: check-in slash commands for the league guild."""
import logging

import discord
from discord import app_commands
from discord.ext import commands

import config
from league.cogs import checkin
from league.models import init_db

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("league")

intents = discord.Intents.default()
intents.members = True  # Server Members Intent: full roster for name matching
intents.presences = True  # Presence Intent: online/idle/dnd status


class LeagueBot(commands.Bot):
    """League check-in bot. Guild lookups come from its own member cache."""

    def __init__(self):
        super().__init__(
            command_prefix="!",
            intents=intents,
            chunk_guilds_at_startup=True,  # Populate member cache so name lookups see everyone
        )

    def league_guild(self) -> discord.Guild | None:
        if not config.DISCORD_GUILD_ID.isdigit():
            return None
        return self.get_guild(int(config.DISCORD_GUILD_ID))

    async def on_ready(self) -> None:
        logger.info("Bot ready: %s (ID: %s)", self.user, self.user.id if self.user else "?")
        guild = self.league_guild()
        if guild is None:
            logger.warning("Bot is not in league guild %r; /checkin lookups will fail", config.DISCORD_GUILD_ID)
            return
        # Guild-scoped copy shows up immediately; global sync can take an hour
        self.tree.copy_global_to(guild=guild)
        try:
            await self.tree.sync(guild=guild)
        except discord.HTTPException as e:
            logger.warning("Failed to sync commands to %s: %s", guild.name, e)
            return
        logger.info("Commands synced to %s (%s), %d members cached", guild.name, guild.id, len(guild.members))

    async def on_check_in_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        # Always respond so Discord doesn't show "application did not respond"
        if isinstance(error, app_commands.errors.CheckFailure):
            msg = "Only league organizers can run check-ins."
        else:
            logger.exception("Command error in /%s: %s", interaction.command.name if interaction.command else "?", error)
            msg = "Check-in command failed. Check bot logs."
        try:
            if interaction.response.is_done():
                await interaction.followup.send(msg, ephemeral=True)
            else:
                await interaction.response.send_message(msg, ephemeral=True)
        except discord.HTTPException:
            logger.warning("Could not report command error to %s", interaction.user)

    async def setup_hook(self) -> None:
        await init_db()
        self.tree.add_command(checkin.checkin_group)
        self.tree.add_command(checkin.presence)
        self.tree.on_error = self.on_check_in_command_error
        await self.tree.sync()
        logger.info("Global commands synced")


def main() -> None:
    """Run the bot."""
    if not config.DISCORD_BOT_TOKEN:
        raise ValueError("DISCORD_BOT_TOKEN is required")
    if not config.DISCORD_GUILD_ID:
        logger.warning("DISCORD_GUILD_ID not set - /checkin will fail until it is")

    LeagueBot().run(config.DISCORD_BOT_TOKEN)


if __name__ == "__main__":
    main()
