"""Check-in preconditions read from stored registration data."""
from __future__ import annotations

import logging
from typing import Optional

from league.models.event_player import SETTLED_PAYMENT_STATUSES
from league.models.payment import PAYMENT_COMPLETE
from league.services.storage import CheckinStore

logger = logging.getLogger("league.preconditions")


async def check_payment_status(store: CheckinStore, user_id: str, event_id: str) -> bool:
    """True if the registration is PAID/FREE, or its linked payment record is COMPLETE."""
    player = await store.get_player_row(user_id, event_id)
    if not player:
        logger.info("No registration for user %s in event %s", user_id, event_id)
        return False
    if player.payment_status in SETTLED_PAYMENT_STATUSES:
        return True
    if player.league_payment_id:
        status = await store.get_payment_record_status(player.league_payment_id)
        if status == PAYMENT_COMPLETE:
            return True
    logger.debug("Payment not complete for user %s in event %s", user_id, event_id)
    return False


async def check_decklist_status(store: CheckinStore, user_id: str, event_id: str) -> bool:
    """True if a non-blank decklist is stored for the registration."""
    player = await store.get_player_row(user_id, event_id)
    if not player:
        return False
    return bool((player.decklist or "").strip())


async def get_discord_handle(store: CheckinStore, user_id: str) -> Optional[str]:
    """Discord handle on record, or None. An input to the presence check, not a condition itself."""
    return await store.get_discord_handle(user_id)
