"""Configuration for the league check-in service."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Discord (bot credential is shared by the REST fetcher and the gateway bot)
DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN") or os.getenv("DISCORD_TOKEN", "")
DISCORD_GUILD_ID = os.getenv("DISCORD_GUILD_ID", "")
DISCORD_ROLE_NAME = os.getenv("DISCORD_ROLE_NAME") or os.getenv("ROLE_NAME", "")
DISCORD_API_BASE = os.getenv("DISCORD_API_BASE", "https://discord.com/api/v10")
DISCORD_MEMBER_PAGE_SIZE = int(os.getenv("DISCORD_MEMBER_PAGE_SIZE", "1000"))  # Discord max per request
DISCORD_HTTP_TIMEOUT = float(os.getenv("DISCORD_HTTP_TIMEOUT", "10"))

# Bulk check-in: 1 = one player at a time
BULK_CHECKIN_CONCURRENCY = max(1, int(os.getenv("BULK_CHECKIN_CONCURRENCY", "1")))

# Shared secret for the HTTP surface (Authorization: Bearer <secret>)
INTERNAL_API_SECRET = os.getenv("INTERNAL_API_SECRET", "")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_RELOAD = os.getenv("API_RELOAD", "").lower() in ("1", "true", "yes")

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'league.db'}",
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


# Role IDs or names (comma-separated). Names are case-insensitive.
def _parse_snowflakes(value: str) -> set[str]:
    """Role/user IDs kept as strings, as Discord's REST API returns them."""
    if not value:
        return set()
    return {x.strip() for x in value.split(",") if x.strip().isdigit()}


def _parse_role_ids(value: str) -> set[int]:
    if not value:
        return set()
    result = set()
    for x in value.split(","):
        try:
            result.add(int(x.strip()))
        except ValueError:
            continue
    return result


def _parse_role_names(value: str) -> set[str]:
    if not value:
        return set()
    return {x.strip().lower() for x in value.split(",") if x.strip()}


# Role required for check-in, in addition to DISCORD_ROLE_NAME
DISCORD_ROLE_IDS = _parse_snowflakes(os.getenv("DISCORD_ROLE_IDS", ""))

# Who may run check-ins from Discord slash commands
MODERATOR_ROLE_IDS = _parse_role_ids(os.getenv("MODERATOR_ROLE_IDS", ""))
MODERATOR_ROLE_NAMES = _parse_role_names(os.getenv("MODERATOR_ROLE_NAMES", ""))
ADMIN_ROLE_IDS = _parse_role_ids(os.getenv("ADMIN_ROLE_IDS", ""))
ADMIN_ROLE_NAMES = _parse_role_names(os.getenv("ADMIN_ROLE_NAMES", ""))

# User IDs that bypass role checks (when Members Intent fails to return roles)
MODERATOR_USER_IDS = _parse_role_ids(os.getenv("MODERATOR_USER_IDS", ""))
ADMIN_USER_IDS = _parse_role_ids(os.getenv("ADMIN_USER_IDS", ""))
