"""Discord REST guild data source (bot credential, no gateway connection)."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

import config
from league.services.guild import (
    GuildMember,
    GuildRole,
    PresenceConfigError,
    member_from_payload,
    presence_from_payload,
    role_from_payload,
)

logger = logging.getLogger("league.discord")


class DiscordAPIError(Exception):
    """Non-success response from the Discord API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DiscordAPIService:
    """Async Discord REST client for guild members, roles and presence."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str | None = None,
        page_size: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.page_size = page_size or config.DISCORD_MEMBER_PAGE_SIZE
        self._client = httpx.AsyncClient(
            base_url=(base_url or config.DISCORD_API_BASE).rstrip("/"),
            headers={
                "Authorization": f"Bot {token}",
                "Content-Type": "application/json",
            },
            timeout=timeout or config.DISCORD_HTTP_TIMEOUT,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordAPIService":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _get_member_page(self, guild_id: str, after: str | None) -> httpx.Response:
        params = {"limit": self.page_size}
        if after:
            params["after"] = after
        # Ask for embedded presences first; some deployments reject the flag
        response = await self._client.get(
            f"/guilds/{guild_id}/members", params={**params, "with_presences": "true"}
        )
        if response.is_success:
            return response
        logger.info("Member fetch with presences failed (%s), retrying without", response.status_code)
        response = await self._client.get(f"/guilds/{guild_id}/members", params=params)
        if not response.is_success:
            raise DiscordAPIError(
                f"Failed to fetch guild members: {response.status_code} {response.reason_phrase}",
                response.status_code,
            )
        return response

    async def fetch_members(self, guild_id: str) -> list[GuildMember]:
        """Fetch every member of the guild, paging by member ID."""
        members: list[GuildMember] = []
        after = None
        while True:
            response = await self._get_member_page(guild_id, after)
            page = [member_from_payload(m) for m in response.json()]
            members.extend(page)
            if len(page) < self.page_size:
                break
            after = page[-1].id
        logger.info("Fetched %d members for guild %s", len(members), guild_id)
        return members

    async def fetch_roles(self, guild_id: str) -> dict[str, GuildRole]:
        """Fetch guild roles keyed by role ID."""
        response = await self._client.get(f"/guilds/{guild_id}/roles")
        if not response.is_success:
            raise DiscordAPIError(
                f"Failed to fetch guild roles: {response.status_code} {response.reason_phrase}",
                response.status_code,
            )
        roles = [role_from_payload(r) for r in response.json()]
        return {r.id: r for r in roles}

    async def fetch_presence(self, guild_id: str, member_id: str) -> Optional[str]:
        """Presence fallback: guild member endpoint, then user endpoint. None if neither has one."""
        for path in (f"/guilds/{guild_id}/members/{member_id}", f"/users/{member_id}"):
            response = await self._client.get(path)
            if not response.is_success:
                continue
            status = presence_from_payload(response.json().get("presence"))
            if status:
                return status
        logger.debug("No presence data available for member %s", member_id)
        return None


def rest_source_from_config() -> DiscordAPIService:
    """REST source using DISCORD_BOT_TOKEN. Caller closes it (async with)."""
    if not config.DISCORD_BOT_TOKEN:
        raise PresenceConfigError("Missing Discord bot token. Set DISCORD_BOT_TOKEN.")
    return DiscordAPIService(config.DISCORD_BOT_TOKEN)
