"""
Week Clock — pure calendar arithmetic for flex-time weeks.

Definitions (all in the clock's local timezone)
-----------------------------------------------
Week window     [week_start, week_end): starts at local midnight of the
                anchor weekday (Saturday by default) and ends at local
                midnight seven calendar days later.
Week id         ISO date of week_start ("2026-10-17"); sorts chronologically.
Viewing window  anchor day or the day after, hours [10, 12).
Decision lock   Votes cast during a week pick the viewing day of the reward
                weekend that opens the *next* week. Voting locks `lock_lead`
                before week_end (Friday 00:00 by default) and the lock ends
                at the reset.
Voting enabled  [week_start + voting_grace, lock_start).

Every method takes `now`; omitting it reads the current time. Naive
datetimes are taken as wall-clock time in the clock's timezone.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from flextime.core.config import Settings
from flextime.core.time_utils import resolve_timezone

SATURDAY = 5


@dataclass(frozen=True)
class WeekWindow:
    start: datetime
    end: datetime
    id: str

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True)
class WeekClock:
    tz: tzinfo
    anchor_weekday: int = SATURDAY
    viewing_start_hour: int = 10
    viewing_end_hour: int = 12
    lock_lead: timedelta = timedelta(hours=24)
    voting_grace: timedelta = timedelta(hours=12)

    @classmethod
    def from_settings(cls, settings: Settings) -> "WeekClock":
        return cls(
            tz=resolve_timezone(settings.TIMEZONE),
            anchor_weekday=settings.WEEK_ANCHOR_WEEKDAY,
            viewing_start_hour=settings.VIEWING_START_HOUR,
            viewing_end_hour=settings.VIEWING_END_HOUR,
            lock_lead=timedelta(hours=settings.VOTING_LOCK_LEAD_HOURS),
            voting_grace=timedelta(hours=settings.VOTING_GRACE_HOURS),
        )

    # --- helpers ---

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def localize(self, now: Optional[datetime] = None) -> datetime:
        if now is None:
            return self.now()
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def _midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    # --- week boundaries ---

    def week_start(self, now: Optional[datetime] = None) -> datetime:
        local = self.localize(now)
        days_since_anchor = (local.weekday() - self.anchor_weekday + 7) % 7
        return self._midnight(local.date() - timedelta(days=days_since_anchor))

    def week_end(self, now: Optional[datetime] = None) -> datetime:
        start = self.week_start(now)
        return self._midnight(start.date() + timedelta(days=7))

    def week_id(self, now: Optional[datetime] = None) -> str:
        return self.week_start(now).date().isoformat()

    def window(self, now: Optional[datetime] = None) -> WeekWindow:
        start = self.week_start(now)
        return WeekWindow(
            start=start,
            end=self._midnight(start.date() + timedelta(days=7)),
            id=start.date().isoformat(),
        )

    def should_reset(self, last_week_start: datetime, now: Optional[datetime] = None) -> bool:
        """True once `now` belongs to a later window than `last_week_start`."""
        return self.week_start(now) > self.localize(last_week_start)

    def time_until_reset(self, now: Optional[datetime] = None) -> timedelta:
        local = self.localize(now)
        # Subtract in UTC so DST transitions inside the week are counted.
        return self.week_end(local).astimezone(timezone.utc) - local.astimezone(timezone.utc)

    # --- viewing window ---

    def is_in_viewing_window(self, now: Optional[datetime] = None) -> bool:
        local = self.localize(now)
        reward_days = {self.anchor_weekday, (self.anchor_weekday + 1) % 7}
        if local.weekday() not in reward_days:
            return False
        return self.viewing_start_hour <= local.hour < self.viewing_end_hour

    # --- voting ---

    def lock_start(self, now: Optional[datetime] = None) -> datetime:
        return self.week_end(now) - self.lock_lead

    def voting_opens_at(self, now: Optional[datetime] = None) -> datetime:
        return self.week_start(now) + self.voting_grace

    def is_decision_locked(self, now: Optional[datetime] = None) -> bool:
        local = self.localize(now)
        return self.lock_start(local) <= local < self.week_end(local)

    def is_voting_enabled(self, now: Optional[datetime] = None) -> bool:
        local = self.localize(now)
        return self.voting_opens_at(local) <= local < self.lock_start(local)

    def decision_week_id(self, now: Optional[datetime] = None) -> str:
        """Id of the week whose vote decides the reward weekend of `now`'s window."""
        previous_day = self.week_start(now) - timedelta(days=1)
        return self.week_id(previous_day)
