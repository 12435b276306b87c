"""
Clock router.

GET /clock          — week window, countdown and voting gates for now
GET /clock/stream   — the same status as server-sent events, once per interval
"""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from flextime.core.config import settings
from flextime.core.sse import sse_event
from flextime.dependencies import get_clock, get_now
from flextime.schemas.clock import ClockStatusResponse
from flextime.services.countdown import ClockStatus, clock_status, ticker
from flextime.services.week_clock import WeekClock

router = APIRouter(prefix="/clock", tags=["clock"])


def _to_response(status: ClockStatus) -> ClockStatusResponse:
    return ClockStatusResponse(
        now=status.now,
        week_id=status.week_id,
        week_start=status.week_start,
        week_end=status.week_end,
        seconds_until_reset=max(int(status.time_until_reset.total_seconds()), 0),
        countdown=status.countdown,
        in_viewing_window=status.in_viewing_window,
        decision_locked=status.decision_locked,
        voting_enabled=status.voting_enabled,
        voting_opens_at=status.voting_opens_at,
        lock_start=status.lock_start,
        decision_week_id=status.decision_week_id,
    )


@router.get("", response_model=ClockStatusResponse, summary="Current week and countdown")
def read_clock(
    clock: WeekClock = Depends(get_clock),
    now: datetime = Depends(get_now),
):
    return _to_response(clock_status(clock, now))


@router.get(
    "/stream",
    summary="Countdown ticks (text/event-stream)",
    response_class=StreamingResponse,
)
def stream_clock(request: Request, clock: WeekClock = Depends(get_clock)):
    """Sends a `clock` event immediately and then every COUNTDOWN_INTERVAL_SECONDS."""

    async def events():
        async for status in ticker(clock, interval=settings.COUNTDOWN_INTERVAL_SECONDS):
            if await request.is_disconnected():
                break
            yield sse_event("clock", _to_response(status).model_dump_json())

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
