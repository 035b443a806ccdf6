"""API routes for player and event check-in."""
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import config
from league.services.checkin import CheckinService
from league.services.discord_api import DiscordAPIError, rest_source_from_config
from league.services.guild import GuildDataSource, PresenceConfigError
from league.services.presence import validate_players_presence
from web.auth import require_service_token

logger = logging.getLogger("league.web")

router = APIRouter(prefix="/api", tags=["checkin"], dependencies=[Depends(require_service_token)])


async def get_guild_source() -> AsyncIterator[GuildDataSource]:
    """REST guild source for one request. Missing bot config is a 503."""
    try:
        source = rest_source_from_config()
    except PresenceConfigError as e:
        logger.error("Discord not configured: %s", e)
        raise HTTPException(503, str(e))
    async with source:
        yield source


async def get_checkin_service(source: GuildDataSource = Depends(get_guild_source)) -> CheckinService:
    try:
        return CheckinService.from_config(source)
    except PresenceConfigError as e:
        logger.error("Discord not configured: %s", e)
        raise HTTPException(503, str(e))


# --- Pydantic schemas ---


class CheckinRequest(BaseModel):
    # Optional so a missing ID comes back as a check-in failure, not a 422
    user_id: Optional[str] = None
    event_id: Optional[str] = None
    discord_handle: Optional[str] = None
    force: bool = False


class BulkCheckinRequest(BaseModel):
    force: bool = False


class PresenceRequest(BaseModel):
    targets: list[str] = Field(min_length=1)
    role_names: Optional[list[str]] = None
    role_ids: Optional[list[str]] = None
    use_id: bool = False


def _result_response(result) -> JSONResponse:
    """200 for a successful result, 400 otherwise; body is the result either way."""
    return JSONResponse(asdict(result), status_code=200 if result.success else 400)


@router.post("/checkin")
async def checkin_player(body: CheckinRequest, service: CheckinService = Depends(get_checkin_service)):
    """Check in one player for an event."""
    result = await service.perform_checkin(
        body.user_id, body.event_id, discord_handle=body.discord_handle, force=body.force
    )
    return _result_response(result)


@router.post("/events/{event_id}/checkin")
async def checkin_event(
    event_id: str,
    body: Optional[BulkCheckinRequest] = None,
    service: CheckinService = Depends(get_checkin_service),
):
    """Check in every PENDING/CONFIRMED player of an event."""
    result = await service.perform_bulk_checkin(event_id, force=bool(body and body.force))
    return _result_response(result)


@router.post("/presence")
async def presence(body: PresenceRequest, source: GuildDataSource = Depends(get_guild_source)):
    """Resolve Discord membership, role and presence for each target."""
    try:
        results = await validate_players_presence(
            body.targets,
            guild_id=config.DISCORD_GUILD_ID,
            role_names=body.role_names,
            role_ids=body.role_ids,
            use_id=body.use_id,
            source=source,
        )
    except PresenceConfigError as e:
        raise HTTPException(503, str(e))
    except DiscordAPIError as e:
        logger.error("Presence lookup failed: %s", e)
        raise HTTPException(502, str(e))
    return [asdict(r) for r in results]
