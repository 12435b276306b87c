"""
Streak Evaluator — consecutive maxed-out weeks.

Walks the newest weekly summaries (weeklyStats, written by the ledger on
every balance change) from most recent to oldest:
  - the current week is skipped while it is not yet maxed out, so an
    in-progress week neither breaks nor extends the streak;
  - every maxed-out week counts;
  - the first week that was not maxed out ends the walk.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from flextime.core.constants import WEEKLY_STATS_COLLECTION, WEEKS_FOR_STREAK
from flextime.core.time_utils import from_iso
from flextime.services.week_clock import WeekClock
from flextime.store import DocumentStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class WeeklySummary:
    week_id: str
    week_start: datetime
    total_earned: int
    maxed_out: bool

    @classmethod
    def from_doc(cls, data: dict[str, Any]) -> "WeeklySummary":
        return cls(
            week_id=str(data["weekId"]),
            week_start=from_iso(data["weekStart"]),
            total_earned=int(data.get("totalEarned") or 0),
            maxed_out=bool(data.get("maxedOut")),
        )


@dataclass
class StreakStatus:
    has_streak: bool
    streak_count: int


def count_streak(summaries: Iterable[WeeklySummary], current_week_id: str) -> int:
    """Count consecutive maxed-out weeks; `summaries` must be newest first."""
    count = 0
    for summary in summaries:
        if summary.week_id == current_week_id and not summary.maxed_out:
            continue
        if not summary.maxed_out:
            break
        count += 1
    return count


class StreakEvaluator:
    def __init__(
        self,
        store: DocumentStore,
        clock: WeekClock,
        weeks_for_streak: int = WEEKS_FOR_STREAK,
    ) -> None:
        self.store = store
        self.clock = clock
        self.weeks_for_streak = weeks_for_streak

    def check(self, now: Optional[datetime] = None) -> StreakStatus:
        """Streak as of `now`; any read failure reports no streak."""
        try:
            docs = self.store.query(
                WEEKLY_STATS_COLLECTION,
                order_by="weekStart",
                descending=True,
                limit=self.weeks_for_streak + 1,
            )
            summaries = [WeeklySummary.from_doc(d) for d in docs]
        except StoreError as exc:
            logger.warning("Streak read failed, reporting no streak: %s", exc)
            return StreakStatus(has_streak=False, streak_count=0)
        except (KeyError, TypeError, ValueError):
            logger.warning("Malformed weekly summary, reporting no streak", exc_info=True)
            return StreakStatus(has_streak=False, streak_count=0)

        streak_count = count_streak(summaries, self.clock.week_id(now))
        return StreakStatus(
            has_streak=streak_count >= self.weeks_for_streak,
            streak_count=streak_count,
        )
