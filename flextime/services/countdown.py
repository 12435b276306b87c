"""
Countdown — what the kid view shows between refreshes.

clock_status(clock, now)     -> ClockStatus   (one evaluation, pure)
ticker(clock, interval, ...) -> async iterator of ClockStatus

The ticker only re-evaluates the Week Clock; it does no I/O and can be
cancelled at any point.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Optional

from flextime.core.time_utils import split_duration
from flextime.services.week_clock import WeekClock

RESET_MESSAGE = "Flex time has reset!"


@dataclass
class ClockStatus:
    now: datetime
    week_id: str
    week_start: datetime
    week_end: datetime
    time_until_reset: timedelta
    countdown: str
    in_viewing_window: bool
    decision_locked: bool
    voting_enabled: bool
    voting_opens_at: datetime
    lock_start: datetime
    decision_week_id: str


def format_countdown(remaining: timedelta) -> str:
    if remaining <= timedelta(0):
        return RESET_MESSAGE
    days, hours, minutes = split_duration(remaining)
    if days > 0:
        return f"{days}d {hours}h until reset"
    if hours > 0:
        return f"{hours}h {minutes}m until reset"
    return f"{minutes}m until reset"


def clock_status(clock: WeekClock, now: Optional[datetime] = None) -> ClockStatus:
    local = clock.localize(now)
    remaining = clock.time_until_reset(local)
    return ClockStatus(
        now=local,
        week_id=clock.week_id(local),
        week_start=clock.week_start(local),
        week_end=clock.week_end(local),
        time_until_reset=remaining,
        countdown=format_countdown(remaining),
        in_viewing_window=clock.is_in_viewing_window(local),
        decision_locked=clock.is_decision_locked(local),
        voting_enabled=clock.is_voting_enabled(local),
        voting_opens_at=clock.voting_opens_at(local),
        lock_start=clock.lock_start(local),
        decision_week_id=clock.decision_week_id(local),
    )


async def ticker(
    clock: WeekClock,
    interval: float = 60.0,
    now_fn: Optional[Callable[[], datetime]] = None,
) -> AsyncIterator[ClockStatus]:
    """Yield a fresh ClockStatus immediately and then every `interval` seconds."""
    while True:
        yield clock_status(clock, now_fn() if now_fn else None)
        await asyncio.sleep(interval)
