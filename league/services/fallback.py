"""Degradation policy for external lookups.

Check-in reads from two external systems (the database and Discord). When one
of those reads fails, the engine carries on with a conservative value instead
of failing the whole check-in. `DEGRADED_DEFAULTS` is the single place that
says which value each kind of lookup falls back to.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Optional, TypeVar

from league.services.guild import NO_PRESENCE, UNKNOWN

logger = logging.getLogger("league.fallback")

T = TypeVar("T")

PAYMENT = "payment"
DECKLIST = "decklist"
DISCORD_HANDLE = "discord_handle"
STATUS_UPDATE = "status_update"
PRESENCE = "presence"
PRESENCE_FALLBACK = "presence_fallback"

DEGRADED_DEFAULTS: dict[str, Any] = {
    PAYMENT: False,
    DECKLIST: False,
    DISCORD_HANDLE: None,
    STATUS_UPDATE: False,
    PRESENCE: NO_PRESENCE,
    PRESENCE_FALLBACK: UNKNOWN,
}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of one external lookup: a value or the error that prevented it."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def attempt(
    awaitable: Awaitable[T],
    errors: tuple[type[BaseException], ...] = (Exception,),
) -> Result[T]:
    """Await a lookup, capturing the listed error types into a Result."""
    try:
        return Result(value=await awaitable)
    except errors as e:
        return Result(error=e)


def degrade(kind: str, result: Result[T]) -> Any:
    """Unwrap a Result, substituting the conservative default for `kind` on error."""
    if result.ok:
        return result.value
    default = DEGRADED_DEFAULTS[kind]
    logger.warning("%s lookup failed, using %r: %s", kind, default, result.error)
    return default
