from datetime import datetime

from pydantic import BaseModel, Field


class ClockStatusResponse(BaseModel):
    now: datetime
    week_id: str
    week_start: datetime
    week_end: datetime
    seconds_until_reset: int
    countdown: str = Field(examples=["2d 4h until reset"])
    in_viewing_window: bool
    decision_locked: bool
    voting_enabled: bool
    voting_opens_at: datetime
    lock_start: datetime
    decision_week_id: str = Field(
        description="Week whose vote decides this window's reward weekend.",
    )
