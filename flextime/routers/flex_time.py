"""
Flex time router.

GET    /flex-time            — current week's balance and entries (public)
POST   /flex-time/award      — add one increment (parent)
DELETE /flex-time/entries    — remove one entry by its exact timestamp (parent)
GET    /flex-time/streak     — consecutive maxed-out weeks (public)
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from flextime.core.errors import error_for_result
from flextime.core.time_utils import format_minutes
from flextime.dependencies import (
    get_ledger,
    get_now,
    get_parent_profile,
    get_streak_evaluator,
)
from flextime.schemas.common import ErrorResponse
from flextime.schemas.flex_time import (
    AwardRequest,
    FlexEntryOut,
    LedgerResultResponse,
    StreakResponse,
    WeeklyLedgerResponse,
)
from flextime.services.ledger import BalanceLedger, FlexEntry, LedgerResult, WeeklyLedger
from flextime.services.streak import StreakEvaluator
from flextime.services.users import UserProfile

router = APIRouter(prefix="/flex-time", tags=["flex-time"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _entry_to_response(e: FlexEntry) -> FlexEntryOut:
    return FlexEntryOut(
        minutes=e.minutes,
        added_by=e.added_by,
        added_by_name=e.added_by_name,
        note=e.note,
        timestamp=e.timestamp,
    )


def _ledger_to_response(ledger: WeeklyLedger, max_per_week: int) -> WeeklyLedgerResponse:
    return WeeklyLedgerResponse(
        week_id=ledger.week_id,
        week_start=ledger.week_start,
        week_end=ledger.week_end,
        balance=ledger.balance,
        balance_display=format_minutes(ledger.balance),
        max_per_week=max_per_week,
        remaining=max(max_per_week - ledger.balance, 0),
        entries=[_entry_to_response(e) for e in ledger.entries],
        notes=[_entry_to_response(e) for e in ledger.notes],
        last_updated=ledger.last_updated,
    )


def _result_or_raise(result: LedgerResult) -> LedgerResultResponse:
    if not result.success:
        raise error_for_result(
            result.code, result.message, details={"new_balance": result.new_balance}
        )
    return LedgerResultResponse(
        success=True,
        message=result.message,
        new_balance=result.new_balance,
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=WeeklyLedgerResponse,
    summary="Current week's flex time",
)
def read_flex_time(
    ledger: BalanceLedger = Depends(get_ledger),
    now: datetime = Depends(get_now),
):
    """
    Balance and entries for the week containing now. Never fails: storage
    problems show up as an empty week so the kid view always renders.
    """
    return _ledger_to_response(ledger.get_current(now), ledger.max_per_week)


@router.post(
    "/award",
    response_model=LedgerResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Award one flex time increment",
    responses={
        401: {"model": ErrorResponse, "description": "No signed-in parent."},
        409: {"model": ErrorResponse, "description": "Weekly maximum already reached."},
        502: {"model": ErrorResponse, "description": "Write failed."},
        503: {"model": ErrorResponse, "description": "Storage not configured."},
    },
)
def award_flex_time(
    payload: Optional[AwardRequest] = Body(default=None),
    ledger: BalanceLedger = Depends(get_ledger),
    profile: UserProfile = Depends(get_parent_profile),
    now: datetime = Depends(get_now),
):
    result = ledger.award(
        added_by=profile.uid,
        added_by_name=profile.name,
        note=payload.note if payload else None,
        now=now,
    )
    return _result_or_raise(result)


@router.delete(
    "/entries",
    response_model=LedgerResultResponse,
    summary="Delete one entry from the current week",
    dependencies=[Depends(get_parent_profile)],
    responses={
        401: {"model": ErrorResponse, "description": "No signed-in parent."},
        404: {"model": ErrorResponse, "description": "No data this week, or no entry at that timestamp."},
        502: {"model": ErrorResponse, "description": "Write failed."},
        503: {"model": ErrorResponse, "description": "Storage not configured."},
    },
)
def delete_flex_time_entry(
    timestamp: datetime = Query(
        description="The entry's `timestamp` exactly as returned by GET /flex-time.",
    ),
    ledger: BalanceLedger = Depends(get_ledger),
    now: datetime = Depends(get_now),
):
    return _result_or_raise(ledger.delete_entry(timestamp, now=now))


@router.get(
    "/streak",
    response_model=StreakResponse,
    summary="Consecutive maxed-out weeks",
)
def read_streak(
    evaluator: StreakEvaluator = Depends(get_streak_evaluator),
    now: datetime = Depends(get_now),
):
    streak = evaluator.check(now)
    return StreakResponse(
        has_streak=streak.has_streak,
        streak_count=streak.streak_count,
        weeks_for_streak=evaluator.weeks_for_streak,
    )
