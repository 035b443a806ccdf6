"""Check-in engine: decide whether a player may be CONFIRMED for an event, singly or for a whole roster."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

import config
from league.models.event import REGISTRATION_CLOSED
from league.models.event_player import CONFIRMED
from league.services import fallback
from league.services.discord_api import rest_source_from_config
from league.services.guild import NO_PRESENCE, DiscordPresence, GuildDataSource
from league.services.preconditions import check_decklist_status, check_payment_status, get_discord_handle
from league.services.presence import PresenceResolver, required_role_names
from league.services.storage import CheckinStore, PlayerRow, SQLCheckinStore

logger = logging.getLogger("league.checkin")

# Order and wording are parsed by callers; keep stable
MISSING_CONDITION_LABELS = ("payment", "decklist", "Discord membership", "Discord role")

# Data-store failures that degrade a precondition instead of failing the check-in
STORE_ERRORS = (SQLAlchemyError,)


@dataclass
class CheckinDetails:
    user_id: str
    event_id: str
    has_paid: bool
    has_decklist: bool
    discord_presence: DiscordPresence
    status_updated: bool


@dataclass
class CheckinResult:
    success: bool
    message: str
    details: Optional[CheckinDetails] = None
    error: Optional[str] = None


@dataclass
class PlayerCheckinOutcome:
    user_id: str
    success: bool
    message: str
    previous_status: str
    new_status: str


@dataclass
class BulkCheckinResult:
    success: bool
    message: str
    event_id: Optional[str] = None
    event_status: Optional[str] = None
    total_players: int = 0
    successful_checkins: int = 0
    failed_checkins: int = 0
    results: list[PlayerCheckinOutcome] = field(default_factory=list)
    error: Optional[str] = None


def missing_conditions(has_paid: bool, has_decklist: bool, presence: DiscordPresence) -> list[str]:
    """Labels of unmet conditions, in MISSING_CONDITION_LABELS order."""
    met = (has_paid, has_decklist, presence.is_member, presence.has_role)
    return [label for label, ok in zip(MISSING_CONDITION_LABELS, met) if not ok]


class CheckinService:
    """Runs check-ins against a store and a guild presence resolver."""

    def __init__(self, store: CheckinStore, resolver: PresenceResolver, *, concurrency: int = 1):
        self.store = store
        self.resolver = resolver
        self.concurrency = max(1, concurrency)

    @classmethod
    def from_config(cls, guild_source: GuildDataSource, store: CheckinStore | None = None) -> "CheckinService":
        """Service for the configured guild and role. Raises PresenceConfigError without a guild ID."""
        resolver = PresenceResolver(
            guild_source,
            config.DISCORD_GUILD_ID,
            role_names=required_role_names(),
            role_ids=config.DISCORD_ROLE_IDS,
        )
        return cls(store or SQLCheckinStore(), resolver, concurrency=config.BULK_CHECKIN_CONCURRENCY)

    async def _resolve_presence(self, handle: str) -> DiscordPresence:
        result = await self.resolver.resolve(handle)
        return DiscordPresence(
            is_member=result.is_member,
            has_role=result.has_role,
            is_present=result.is_present,
            username=result.username,
        )

    async def discord_presence(self, handle: Optional[str]) -> DiscordPresence:
        """Presence for a handle. Any Discord failure degrades to not-a-member."""
        if not handle:
            return NO_PRESENCE
        logger.info("Validating Discord presence for handle: %s", handle)
        return fallback.degrade(fallback.PRESENCE, await fallback.attempt(self._resolve_presence(handle)))

    async def perform_checkin(
        self,
        user_id: Optional[str],
        event_id: Optional[str],
        *,
        discord_handle: Optional[str] = None,
        force: bool = False,
    ) -> CheckinResult:
        """Check one player in. Never raises.

        Accepted iff paid, decklist submitted, guild member and has the role.
        Presence is reported but does not gate. `force` writes CONFIRMED
        regardless; a forced run only succeeds if that write does.
        """
        if not user_id or not event_id:
            return CheckinResult(
                success=False,
                message="Missing user_id or event_id",
                error="user_id and event_id are required",
            )

        try:
            has_paid = fallback.degrade(
                fallback.PAYMENT,
                await fallback.attempt(check_payment_status(self.store, user_id, event_id), STORE_ERRORS),
            )
            has_decklist = fallback.degrade(
                fallback.DECKLIST,
                await fallback.attempt(check_decklist_status(self.store, user_id, event_id), STORE_ERRORS),
            )
            handle = discord_handle or fallback.degrade(
                fallback.DISCORD_HANDLE,
                await fallback.attempt(get_discord_handle(self.store, user_id), STORE_ERRORS),
            )
            presence = await self.discord_presence(handle)

            missing = missing_conditions(has_paid, has_decklist, presence)
            accepted = not missing
            status_updated = False

            if accepted or force:
                status_updated = fallback.degrade(
                    fallback.STATUS_UPDATE,
                    await fallback.attempt(self.store.update_player_status(user_id, event_id), STORE_ERRORS),
                )

            if accepted:
                message = (
                    "Player successfully checked in and confirmed"
                    if status_updated
                    else "All conditions met but failed to update status"
                )
            elif force:
                message = (
                    f"Player force-confirmed. Missing: {', '.join(missing)}"
                    if status_updated
                    else f"Forced checkin failed to update status. Missing: {', '.join(missing)}"
                )
            else:
                message = f"Checkin failed. Missing: {', '.join(missing)}"

            success = accepted or (force and status_updated)
            logger.info("Checkin for user %s in event %s: %s", user_id, event_id, message)
            return CheckinResult(
                success=success,
                message=message,
                details=CheckinDetails(
                    user_id=user_id,
                    event_id=event_id,
                    has_paid=has_paid,
                    has_decklist=has_decklist,
                    discord_presence=presence,
                    status_updated=status_updated,
                ),
            )
        except Exception as e:
            logger.exception("Checkin process failed for user %s in event %s", user_id, event_id)
            return CheckinResult(
                success=False,
                message="Checkin process failed due to internal error",
                error=str(e) or type(e).__name__,
            )

    async def _checkin_step(self, player: PlayerRow, event_id: str, force: bool) -> PlayerCheckinOutcome:
        """One roster entry. Exceptions become that player's failure entry."""
        logger.info("Processing player %s (current status: %s)", player.user_id, player.status)
        try:
            result = await self.perform_checkin(player.user_id, event_id, force=force)
        except Exception as e:
            logger.exception("Failed to process player %s", player.user_id)
            return PlayerCheckinOutcome(
                user_id=player.user_id,
                success=False,
                message=str(e) or "Unknown error",
                previous_status=player.status,
                new_status=player.status,
            )
        updated = bool(result.details and result.details.status_updated)
        return PlayerCheckinOutcome(
            user_id=player.user_id,
            success=result.success,
            message=result.message,
            previous_status=player.status,
            new_status=CONFIRMED if updated else player.status,
        )

    async def _run_roster(self, roster: list[PlayerRow], event_id: str, force: bool) -> list[PlayerCheckinOutcome]:
        """Check in every player, in roster order. Bounded by self.concurrency."""
        if self.concurrency == 1:
            return [await self._checkin_step(p, event_id, force) for p in roster]

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(player: PlayerRow) -> PlayerCheckinOutcome:
            async with semaphore:
                return await self._checkin_step(player, event_id, force)

        return list(await asyncio.gather(*(bounded(p) for p in roster)))

    async def perform_bulk_checkin(self, event_id: Optional[str], *, force: bool = False) -> BulkCheckinResult:
        """Check in every PENDING/CONFIRMED player of an event. Never raises.

        Runs only once registration is closed unless forced. Completes with
        success=True even when individual players fail; see `results`.
        """
        if not event_id:
            return BulkCheckinResult(success=False, message="Missing event_id", error="event_id is required")

        try:
            event = await self.store.get_event(event_id)
            if not event:
                return BulkCheckinResult(
                    success=False, message="Event not found", event_id=event_id, error="Event does not exist"
                )

            logger.info("Processing bulk checkin for event: %s (%s) - Status: %s", event.title, event.id, event.status)
            if event.status != REGISTRATION_CLOSED and not force:
                return BulkCheckinResult(
                    success=False,
                    message=f"Event status is {event.status}, expected {REGISTRATION_CLOSED}",
                    event_id=event_id,
                    event_status=event.status,
                    error=f"Event must be in {REGISTRATION_CLOSED} status to run check-ins",
                )

            try:
                roster = await self.store.get_roster(event_id)
            except STORE_ERRORS as e:
                logger.error("Failed to fetch registered players for event %s: %s", event_id, e)
                return BulkCheckinResult(
                    success=False,
                    message="Failed to fetch registered players",
                    event_id=event_id,
                    event_status=event.status,
                    error=str(e),
                )

            if not roster:
                return BulkCheckinResult(
                    success=True,
                    message="No players found with PENDING or CONFIRMED status",
                    event_id=event_id,
                    event_status=event.status,
                )

            logger.info("Found %d players to process for event %s", len(roster), event_id)
            results = await self._run_roster(roster, event_id, force)
        except Exception as e:
            logger.exception("Bulk checkin process failed for event %s", event_id)
            return BulkCheckinResult(
                success=False,
                message="Bulk checkin process failed due to internal error",
                event_id=event_id,
                error=str(e) or type(e).__name__,
            )

        total = len(results)
        confirmed = sum(1 for r in results if r.success)
        rate = confirmed / total * 100
        logger.info("Bulk checkin completed: %d/%d players confirmed (%.1f%%)", confirmed, total, rate)
        return BulkCheckinResult(
            success=True,
            message=(
                f"Bulk checkin completed for event {event_id}. "
                f"{confirmed}/{total} players confirmed ({rate:.1f}%)"
            ),
            event_id=event_id,
            event_status=event.status,
            total_players=total,
            successful_checkins=confirmed,
            failed_checkins=total - confirmed,
            results=results,
        )


async def perform_checkin(user_id: str, event_id: str, **options) -> CheckinResult:
    """Single check-in against the configured guild over REST."""
    async with rest_source_from_config() as source:
        return await CheckinService.from_config(source).perform_checkin(user_id, event_id, **options)


async def perform_bulk_checkin(event_id: str, **options) -> BulkCheckinResult:
    """Bulk check-in against the configured guild over REST."""
    async with rest_source_from_config() as source:
        return await CheckinService.from_config(source).perform_bulk_checkin(event_id, **options)
