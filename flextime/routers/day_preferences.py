"""
Day preferences router.

GET  /day-preferences                 — the week's votes and winning day (public)
GET  /day-preferences/stream          — server-sent events, one per committed vote
PUT  /day-preferences/{participant}   — cast or change one participant's vote

Votes are only accepted while the clock says voting is enabled:
  opens   week start + VOTING_GRACE_HOURS   (Saturday 12:00 by default)
  locks   week end - VOTING_LOCK_LEAD_HOURS (Friday 00:00 by default)
The lock starts a day before the Saturday 00:00 reset, not at the reset, so
the Friday before a reward weekend already shows the final choice. Set
VOTING_LOCK_LEAD_HOURS=0 to keep voting open until the reset.
Outside that range PUT answers 409 VOTING_NOT_OPEN or VOTING_LOCKED.
"""
from __future__ import annotations

import asyncio
import queue
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import StreamingResponse

from flextime.core.constants import Participant
from flextime.core.errors import VotingLockedError, VotingNotOpenError, error_for_result
from flextime.core.sse import sse_event
from flextime.core.time_utils import to_iso
from flextime.dependencies import get_clock, get_now, get_voter
from flextime.schemas.common import ErrorResponse
from flextime.schemas.day_preferences import DayPreferenceResponse, VoteRequest, VoteResponse
from flextime.services.day_preferences import (
    DayPreferenceSet,
    DayPreferenceVoter,
    PreferenceStream,
)
from flextime.services.week_clock import WeekClock
from flextime.store import SubscriptionClosed

router = APIRouter(prefix="/day-preferences", tags=["day-preferences"])

# How long one blocking read of the stream may wait before the
# disconnect check runs again.
_POLL_SECONDS = 1.0


def _to_response(prefs: DayPreferenceSet) -> DayPreferenceResponse:
    return DayPreferenceResponse(
        week_id=prefs.week_id,
        preferences=prefs.preferences,
        winning_day=prefs.winning_day,
        last_updated=prefs.last_updated,
    )


@router.get(
    "",
    response_model=DayPreferenceResponse,
    summary="Votes for a week",
)
def read_day_preferences(
    week_id: Optional[str] = Query(
        default=None,
        description="Week id (ISO date of the week start). Defaults to the current week.",
        examples=["2026-10-17"],
    ),
    voter: DayPreferenceVoter = Depends(get_voter),
    now: datetime = Depends(get_now),
):
    """Missing votes read as Saturday; storage errors return all-Saturday defaults."""
    return _to_response(voter.get(week_id=week_id, now=now))


async def _event_source(request: Request, stream: PreferenceStream):
    try:
        while True:
            if await request.is_disconnected():
                break
            try:
                prefs = await asyncio.to_thread(stream.get, _POLL_SECONDS)
            except queue.Empty:
                continue
            except SubscriptionClosed:
                break
            yield sse_event("preferences", _to_response(prefs).model_dump_json())
    finally:
        stream.close()


@router.get(
    "/stream",
    summary="Live vote updates (text/event-stream)",
    response_class=StreamingResponse,
)
def stream_day_preferences(
    request: Request,
    voter: DayPreferenceVoter = Depends(get_voter),
    now: datetime = Depends(get_now),
):
    """
    Emits a `preferences` event with the current votes right away, then one
    per committed vote for this week. When the store cannot be watched a
    single all-Saturday event is sent and the stream ends.
    """
    return StreamingResponse(
        _event_source(request, voter.stream(now)),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.put(
    "/{participant}",
    response_model=VoteResponse,
    summary="Cast a vote for this week's reward weekend",
    responses={
        409: {"model": ErrorResponse, "description": "Voting is locked or not open yet."},
        502: {"model": ErrorResponse, "description": "Write failed."},
        503: {"model": ErrorResponse, "description": "Storage not configured."},
    },
)
def vote_day_preference(
    payload: VoteRequest,
    participant: Participant = Path(description="Whose vote this is."),
    voter: DayPreferenceVoter = Depends(get_voter),
    clock: WeekClock = Depends(get_clock),
    now: datetime = Depends(get_now),
):
    if clock.is_decision_locked(now):
        raise VotingLockedError(unlocks_at=to_iso(clock.week_end(now)))
    if not clock.is_voting_enabled(now):
        raise VotingNotOpenError(opens_at=to_iso(clock.voting_opens_at(now)))

    result = voter.set_preference(participant, payload.day, now=now)
    if not result.success:
        raise error_for_result(result.code, result.message)
    return VoteResponse(
        success=True,
        message=result.message,
        preferences=_to_response(voter.get(now=now)),
    )
