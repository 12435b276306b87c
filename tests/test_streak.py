"""
Tests for the Streak Evaluator.
"""
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from flextime.core.constants import WEEKLY_STATS_COLLECTION
from flextime.core.time_utils import to_iso
from flextime.services.ledger import BalanceLedger
from flextime.services.streak import StreakEvaluator, WeeklySummary, count_streak
from flextime.store import InMemoryDocumentStore

CHICAGO = ZoneInfo("America/Chicago")
MONDAY = datetime(2026, 10, 19, 9, 0, tzinfo=CHICAGO)
CURRENT_WEEK = "2026-10-17"


def week_start(weeks_ago):
    return datetime(2026, 10, 17, tzinfo=CHICAGO) - timedelta(days=7 * weeks_ago)


def seed_summary(store, weeks_ago, total):
    start = week_start(weeks_ago)
    week_id = start.date().isoformat()
    store.set(WEEKLY_STATS_COLLECTION, week_id, {
        "weekId": week_id,
        "weekStart": to_iso(start),
        "totalEarned": total,
        "maxedOut": total >= 120,
    })


def summary(weeks_ago, maxed):
    start = week_start(weeks_ago)
    return WeeklySummary(start.date().isoformat(), start, 120 if maxed else 40, maxed)


class TestCountStreak:
    def test_empty(self):
        assert count_streak([], CURRENT_WEEK) == 0

    def test_in_progress_week_is_skipped(self):
        weeks = [summary(0, False), summary(1, True), summary(2, True)]
        assert count_streak(weeks, CURRENT_WEEK) == 2

    def test_maxed_current_week_counts(self):
        weeks = [summary(0, True), summary(1, True)]
        assert count_streak(weeks, CURRENT_WEEK) == 2

    def test_first_missed_week_ends_streak(self):
        weeks = [summary(0, False), summary(1, True), summary(2, False), summary(3, True)]
        assert count_streak(weeks, CURRENT_WEEK) == 1

    def test_missed_previous_week(self):
        weeks = [summary(0, True), summary(1, False), summary(2, True)]
        assert count_streak(weeks, CURRENT_WEEK) == 1


class TestStreakEvaluator:
    @pytest.fixture()
    def evaluator(self, memory_store, clock):
        return StreakEvaluator(memory_store, clock)

    def test_no_history(self, evaluator):
        status = evaluator.check(MONDAY)
        assert status.has_streak is False
        assert status.streak_count == 0

    def test_two_maxed_weeks_before_current(self, memory_store, evaluator):
        seed_summary(memory_store, 0, 30)
        seed_summary(memory_store, 1, 120)
        seed_summary(memory_store, 2, 120)
        status = evaluator.check(MONDAY)
        assert status.has_streak is True
        assert status.streak_count == 2

    def test_one_maxed_week_is_not_a_streak(self, memory_store, evaluator):
        seed_summary(memory_store, 0, 120)
        seed_summary(memory_store, 1, 60)
        seed_summary(memory_store, 2, 120)
        status = evaluator.check(MONDAY)
        assert status.has_streak is False
        assert status.streak_count == 1

    def test_reads_at_most_k_plus_one_weeks(self, memory_store, evaluator):
        for weeks_ago in range(6):
            seed_summary(memory_store, weeks_ago, 120)
        assert evaluator.check(MONDAY).streak_count == 3

    def test_read_failure_reports_no_streak(self, clock):
        status = StreakEvaluator(InMemoryDocumentStore(deny_reads=True), clock).check(MONDAY)
        assert (status.has_streak, status.streak_count) == (False, 0)

    def test_malformed_summary_reports_no_streak(self, memory_store, evaluator):
        memory_store.set(WEEKLY_STATS_COLLECTION, "broken", {"weekStart": "2026-10-17T00:00:00-05:00"})
        assert evaluator.check(MONDAY).streak_count == 0

    def test_ledger_summaries_feed_streak(self, memory_store, clock, evaluator):
        ledger = BalanceLedger(memory_store, clock)
        for weeks_ago in (1, 2):
            start = week_start(weeks_ago) + timedelta(days=2, hours=9)
            for i in range(12):
                ledger.award("u-parent", now=start + timedelta(minutes=i))
        assert evaluator.check(MONDAY).has_streak is True
