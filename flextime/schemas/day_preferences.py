"""
Day preference schemas.

GET /day-preferences                 → DayPreferenceResponse
PUT /day-preferences/{participant}   → VoteRequest → VoteResponse
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from flextime.core.constants import Day, Participant


class DayPreferenceResponse(BaseModel):
    week_id: str
    preferences: dict[Participant, Day]
    winning_day: Day
    last_updated: Optional[datetime] = None


class VoteRequest(BaseModel):
    day: Day = Field(examples=["sunday"])


class VoteResponse(BaseModel):
    success: bool
    message: str
    preferences: DayPreferenceResponse
