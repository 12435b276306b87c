"""
Day Preference Voter — which weekend day hosts the viewing window.

One dayPreferences/{weekId} document per week:
  {weekId, preferences: {charlie|malcolm|henry: "saturday"|"sunday"}, lastUpdated}

Missing documents, participants, or unreadable values default to Saturday.
A vote is a single-field update, so concurrent votes by different
participants never overwrite each other.

The voter performs no time checks. Callers gate set_preference() on
WeekClock.is_decision_locked() and WeekClock.is_voting_enabled().
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from flextime.core.constants import (
    DAY_PREFERENCES_COLLECTION,
    DEFAULT_DAY,
    PARTICIPANTS,
    Day,
    Participant,
)
from flextime.core.errors import ResultCode
from flextime.core.time_utils import from_iso, to_iso
from flextime.services.week_clock import WeekClock
from flextime.store import (
    DocumentStore,
    StoreError,
    StoreUnavailableError,
    Subscription,
    SubscriptionClosed,
)

logger = logging.getLogger(__name__)

PreferenceCallback = Callable[["DayPreferenceSet"], None]


def winning_day(preferences: Mapping[str, Union[Day, str]]) -> Day:
    """Majority vote; ties (including no votes at all) go to Saturday."""
    saturday_votes = sum(1 for d in preferences.values() if d == Day.saturday.value)
    sunday_votes = sum(1 for d in preferences.values() if d == Day.sunday.value)
    return Day.saturday if saturday_votes >= sunday_votes else Day.sunday


@dataclass
class DayPreferenceSet:
    week_id: str
    preferences: dict[str, Day] = field(
        default_factory=lambda: {p: DEFAULT_DAY for p in PARTICIPANTS}
    )
    last_updated: Optional[datetime] = None

    @classmethod
    def default(cls, week_id: str) -> "DayPreferenceSet":
        return cls(week_id=week_id)

    @classmethod
    def from_doc(cls, week_id: str, data: Optional[dict[str, Any]]) -> "DayPreferenceSet":
        result = cls.default(week_id)
        if not data:
            return result
        stored = data.get("preferences") or {}
        if isinstance(stored, dict):
            for participant in PARTICIPANTS:
                try:
                    result.preferences[participant] = Day(stored.get(participant, DEFAULT_DAY.value))
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid day %r for %s in %s", stored.get(participant), participant, week_id)
        try:
            result.last_updated = from_iso(data["lastUpdated"]) if data.get("lastUpdated") else None
        except (TypeError, ValueError):
            result.last_updated = None
        return result

    @property
    def winning_day(self) -> Day:
        return winning_day(self.preferences)


@dataclass
class VoteResult:
    success: bool
    message: str
    code: str = ResultCode.OK


class PreferenceStream:
    """Closable stream of DayPreferenceSet snapshots for one week.

    Built without a subscription, it yields a single default set and ends.
    """

    def __init__(self, week_id: str, subscription: Optional[Subscription] = None) -> None:
        self.week_id = week_id
        self._subscription = subscription
        self._fallback_pending = subscription is None

    def get(self, timeout: Optional[float] = None) -> DayPreferenceSet:
        """Next snapshot; raises queue.Empty on timeout and SubscriptionClosed at the end."""
        if self._subscription is None:
            if self._fallback_pending:
                self._fallback_pending = False
                return DayPreferenceSet.default(self.week_id)
            raise SubscriptionClosed()
        return DayPreferenceSet.from_doc(self.week_id, self._subscription.get(timeout))

    def close(self) -> None:
        self._fallback_pending = False
        if self._subscription is not None:
            self._subscription.close()

    def __iter__(self) -> Iterator[DayPreferenceSet]:
        while True:
            try:
                yield self.get()
            except SubscriptionClosed:
                return

    def __enter__(self) -> "PreferenceStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class DayPreferenceVoter:
    def __init__(self, store: DocumentStore, clock: WeekClock) -> None:
        self.store = store
        self.clock = clock

    def get(self, week_id: Optional[str] = None, now: Optional[datetime] = None) -> DayPreferenceSet:
        week_id = week_id or self.clock.week_id(now)
        try:
            data = self.store.get(DAY_PREFERENCES_COLLECTION, week_id)
        except StoreError as exc:
            logger.warning("Day preference read failed for %s, using defaults: %s", week_id, exc)
            return DayPreferenceSet.default(week_id)
        return DayPreferenceSet.from_doc(week_id, data)

    def subscribe(self, callback: PreferenceCallback, now: Optional[datetime] = None) -> Callable[[], None]:
        """Push the current set to `callback`, then every committed change.

        On subscription failure the callback gets one default set and the
        returned unsubscribe is a no-op.
        """
        week_id = self.clock.week_id(now)

        def on_snapshot(data: Optional[dict[str, Any]]) -> None:
            callback(DayPreferenceSet.from_doc(week_id, data))

        try:
            return self.store.watch(DAY_PREFERENCES_COLLECTION, week_id, on_snapshot)
        except StoreError as exc:
            logger.warning("Day preference subscription failed for %s: %s", week_id, exc)
            callback(DayPreferenceSet.default(week_id))
            return lambda: None

    def stream(self, now: Optional[datetime] = None) -> PreferenceStream:
        week_id = self.clock.week_id(now)
        try:
            subscription = self.store.subscribe(DAY_PREFERENCES_COLLECTION, week_id)
        except StoreError as exc:
            logger.warning("Day preference stream failed for %s: %s", week_id, exc)
            return PreferenceStream(week_id)
        return PreferenceStream(week_id, subscription)

    def set_preference(
        self,
        participant: Union[Participant, str],
        day: Union[Day, str],
        now: Optional[datetime] = None,
    ) -> VoteResult:
        name = Participant(participant).value
        choice = Day(day)
        local = self.clock.localize(now)
        week_id = self.clock.week_id(local)
        try:
            with self.store.transaction() as tx:
                if tx.get(DAY_PREFERENCES_COLLECTION, week_id) is None:
                    tx.set(DAY_PREFERENCES_COLLECTION, week_id, {
                        "weekId": week_id,
                        "preferences": {name: choice.value},
                        "lastUpdated": to_iso(local),
                    })
                else:
                    tx.update(DAY_PREFERENCES_COLLECTION, week_id, {
                        f"preferences.{name}": choice.value,
                        "lastUpdated": to_iso(local),
                    })
        except StoreUnavailableError:
            return VoteResult(False, "Storage is not configured.", ResultCode.STORE_UNAVAILABLE)
        except StoreError:
            logger.exception("Vote by %s failed for %s", name, week_id)
            return VoteResult(False, "Could not save your vote. Please try again.", ResultCode.WRITE_FAILED)

        logger.info("%s voted %s for %s", name, choice.value, week_id)
        return VoteResult(True, f"{name.title()} picked {choice.value.title()}!")
