"""
Flex time request / response schemas.

GET    /flex-time            → WeeklyLedgerResponse
POST   /flex-time/award      → AwardRequest → LedgerResultResponse
DELETE /flex-time/entries    → LedgerResultResponse
GET    /flex-time/streak     → StreakResponse
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FlexEntryOut(BaseModel):
    minutes: int
    added_by: str
    added_by_name: Optional[str] = None
    note: Optional[str] = None
    timestamp: datetime = Field(
        description="Exact award instant. Pass it back unchanged to delete the entry.",
    )


class WeeklyLedgerResponse(BaseModel):
    week_id: str = Field(examples=["2026-10-17"])
    week_start: datetime
    week_end: datetime
    balance: int = Field(description="Minutes earned this week (0..max_per_week).")
    balance_display: str = Field(examples=["1h 30m"])
    max_per_week: int
    remaining: int = Field(description="Minutes still available before the weekly cap.")
    entries: list[FlexEntryOut]
    notes: list[FlexEntryOut] = Field(description="Entries that carry a note.")
    last_updated: Optional[datetime] = None


class AwardRequest(BaseModel):
    note: Optional[str] = Field(
        default=None,
        max_length=280,
        description="Why the time was earned. Blank notes are dropped.",
        examples=["Helped with the dishes"],
    )


class LedgerResultResponse(BaseModel):
    success: bool
    message: str
    new_balance: int


class StreakResponse(BaseModel):
    has_streak: bool
    streak_count: int
    weeks_for_streak: int
