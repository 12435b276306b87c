"""
Balance Ledger — per-week capped flex-time balance plus its entry log.

Stored shape (flexTime/{weekId})
--------------------------------
  weekId, weekStart, weekEnd     window the document belongs to
  balance                        stored running total (0..MAX)
  entries                        [{minutes, addedBy, addedByName?, note?, timestamp}]
  lastUpdated

Reads never trust the stored scalar: the effective balance is recomputed
from the entries whose timestamp falls inside the current window, so
entries written under an older window definition drop out.

Public API
----------
BalanceLedger.get_current(now)                                -> WeeklyLedger
BalanceLedger.award(added_by, added_by_name, note, now)      -> LedgerResult
BalanceLedger.delete_entry(timestamp, now)                   -> LedgerResult

Writes run inside one store transaction that also upserts the matching
weeklyStats/{weekId} summary. Write failures come back as results with
success=False; they are never raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from flextime.core.constants import (
    FLEX_TIME_COLLECTION,
    FLEX_TIME_INCREMENT,
    MAX_FLEX_TIME_PER_WEEK,
    WEEKLY_STATS_COLLECTION,
)
from flextime.core.errors import ResultCode
from flextime.core.time_utils import from_iso, to_iso
from flextime.services.week_clock import WeekClock, WeekWindow
from flextime.store import DocumentStore, StoreError, StoreUnavailableError, Transaction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class FlexEntry:
    minutes: int
    added_by: str
    timestamp: datetime
    added_by_name: Optional[str] = None
    note: Optional[str] = None

    def to_doc(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "minutes": self.minutes,
            "addedBy": self.added_by,
            "timestamp": to_iso(self.timestamp),
        }
        # Optional keys are omitted rather than stored as null.
        if self.added_by_name:
            doc["addedByName"] = self.added_by_name
        if self.note:
            doc["note"] = self.note
        return doc

    @classmethod
    def from_doc(cls, data: dict[str, Any]) -> "FlexEntry":
        return cls(
            minutes=int(data["minutes"]),
            added_by=str(data["addedBy"]),
            timestamp=from_iso(data["timestamp"]),
            added_by_name=data.get("addedByName"),
            note=data.get("note"),
        )


@dataclass
class WeeklyLedger:
    week_id: str
    week_start: datetime
    week_end: datetime
    balance: int
    entries: list[FlexEntry] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    @property
    def notes(self) -> list[FlexEntry]:
        """Entries that explain why the time was earned."""
        return [e for e in self.entries if e.note and e.note.strip()]


@dataclass
class LedgerResult:
    success: bool
    message: str
    new_balance: int
    code: str = ResultCode.OK


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_entries(raw_entries: list[Any], week_id: str) -> list[FlexEntry]:
    entries: list[FlexEntry] = []
    for raw in raw_entries:
        try:
            entries.append(FlexEntry.from_doc(raw))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed entry in %s/%s: %r", FLEX_TIME_COLLECTION, week_id, raw)
    return entries


def _find_entry(raw_entries: list[Any], target: datetime) -> Optional[int]:
    """Index of the first entry stamped exactly at `target`, compared as instants."""
    for index, raw in enumerate(raw_entries):
        try:
            stamp = from_iso(raw["timestamp"])
        except (KeyError, TypeError, ValueError):
            continue
        if stamp == target:
            return index
    return None


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class BalanceLedger:
    def __init__(
        self,
        store: DocumentStore,
        clock: WeekClock,
        max_per_week: int = MAX_FLEX_TIME_PER_WEEK,
        increment: int = FLEX_TIME_INCREMENT,
    ) -> None:
        self.store = store
        self.clock = clock
        self.max_per_week = max_per_week
        self.increment = increment

    # --- reads ---

    def _empty(self, window: WeekWindow, now: datetime) -> WeeklyLedger:
        return WeeklyLedger(
            week_id=window.id,
            week_start=window.start,
            week_end=window.end,
            balance=0,
            entries=[],
            last_updated=now,
        )

    def _effective(self, data: dict[str, Any], window: WeekWindow, now: datetime) -> WeeklyLedger:
        entries = [
            e for e in _parse_entries(data.get("entries") or [], window.id)
            if window.contains(e.timestamp)
        ]
        total = sum(e.minutes for e in entries)
        try:
            last_updated = from_iso(data["lastUpdated"]) if data.get("lastUpdated") else now
        except (TypeError, ValueError):
            last_updated = now
        return WeeklyLedger(
            week_id=window.id,
            week_start=window.start,
            week_end=window.end,
            balance=min(max(total, 0), self.max_per_week),
            entries=entries,
            last_updated=last_updated,
        )

    def get_current(self, now: Optional[datetime] = None) -> WeeklyLedger:
        """Current week's ledger; any read failure yields the empty ledger."""
        local = self.clock.localize(now)
        window = self.clock.window(local)
        try:
            data = self.store.get(FLEX_TIME_COLLECTION, window.id)
        except StoreError as exc:
            logger.warning("Flex time read failed for %s, showing empty week: %s", window.id, exc)
            return self._empty(window, local)
        if data is None:
            return self._empty(window, local)
        return self._effective(data, window, local)

    # --- writes ---

    def _upsert_summary(self, tx: Transaction, window: WeekWindow, total: int) -> None:
        tx.set(
            WEEKLY_STATS_COLLECTION,
            window.id,
            {
                "weekId": window.id,
                "weekStart": to_iso(window.start),
                "totalEarned": total,
                "maxedOut": total >= self.max_per_week,
            },
            merge=True,
        )

    def award(
        self,
        added_by: str,
        added_by_name: Optional[str] = None,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LedgerResult:
        """Add one increment to this week's balance, up to the weekly maximum."""
        local = self.clock.localize(now)
        window = self.clock.window(local)
        note = note.strip() if note and note.strip() else None
        current = 0
        try:
            with self.store.transaction() as tx:
                data = tx.get(FLEX_TIME_COLLECTION, window.id)
                if data is not None:
                    current = self._effective(data, window, local).balance

                if current >= self.max_per_week:
                    logger.info("Award rejected for %s: already at %d minutes", window.id, current)
                    return LedgerResult(
                        success=False,
                        message=(
                            f"Already at maximum flex time ({self.max_per_week} minutes) "
                            "for this week!"
                        ),
                        new_balance=current,
                        code=ResultCode.LIMIT_REACHED,
                    )

                new_balance = min(current + self.increment, self.max_per_week)
                entry = FlexEntry(
                    minutes=new_balance - current,
                    added_by=added_by,
                    added_by_name=added_by_name,
                    note=note,
                    timestamp=local,
                )
                if data is None:
                    tx.set(FLEX_TIME_COLLECTION, window.id, {
                        "weekId": window.id,
                        "weekStart": to_iso(window.start),
                        "weekEnd": to_iso(window.end),
                        "balance": new_balance,
                        "entries": [entry.to_doc()],
                        "lastUpdated": to_iso(local),
                    })
                else:
                    tx.update(FLEX_TIME_COLLECTION, window.id, {
                        "balance": new_balance,
                        "entries": [*(data.get("entries") or []), entry.to_doc()],
                        "lastUpdated": to_iso(local),
                    })
                self._upsert_summary(tx, window, new_balance)
        except StoreUnavailableError:
            return LedgerResult(False, "Storage is not configured.", current, ResultCode.STORE_UNAVAILABLE)
        except StoreError:
            logger.exception("Award failed for %s", window.id)
            return LedgerResult(
                False, "Could not save flex time. Please try again.", current, ResultCode.WRITE_FAILED
            )

        logger.info("Awarded %d minutes for %s by %s (balance %d)", entry.minutes, window.id, added_by, new_balance)
        return LedgerResult(
            success=True,
            message=f"Added {entry.minutes} minutes! New balance: {new_balance} minutes",
            new_balance=new_balance,
        )

    def delete_entry(
        self,
        timestamp: Union[datetime, str],
        now: Optional[datetime] = None,
    ) -> LedgerResult:
        """Remove the single entry stamped exactly at `timestamp` from this week."""
        local = self.clock.localize(now)
        window = self.clock.window(local)
        target = from_iso(timestamp) if isinstance(timestamp, str) else self.clock.localize(timestamp)
        stored_balance = 0
        try:
            with self.store.transaction() as tx:
                data = tx.get(FLEX_TIME_COLLECTION, window.id)
                if data is None:
                    return LedgerResult(
                        False, "No flex time data for this week.", 0, ResultCode.NO_DATA
                    )

                stored_balance = int(data.get("balance") or 0)
                raw_entries = list(data.get("entries") or [])
                index = _find_entry(raw_entries, target)
                if index is None:
                    logger.info("Delete rejected for %s: no entry at %s", window.id, to_iso(target))
                    return LedgerResult(
                        False, "Entry not found.", stored_balance, ResultCode.ENTRY_NOT_FOUND
                    )

                removed = raw_entries.pop(index)
                removed_minutes = int(removed.get("minutes") or 0)
                new_balance = max(0, stored_balance - removed_minutes)
                tx.update(FLEX_TIME_COLLECTION, window.id, {
                    "balance": new_balance,
                    "entries": raw_entries,
                    "lastUpdated": to_iso(local),
                })
                self._upsert_summary(tx, window, new_balance)
        except StoreUnavailableError:
            return LedgerResult(False, "Storage is not configured.", stored_balance, ResultCode.STORE_UNAVAILABLE)
        except StoreError:
            logger.exception("Delete failed for %s", window.id)
            return LedgerResult(
                False, "Could not delete the entry. Please try again.", stored_balance, ResultCode.WRITE_FAILED
            )

        logger.info("Removed %d minutes from %s (balance %d)", removed_minutes, window.id, new_balance)
        return LedgerResult(
            success=True,
            message=f"Removed {removed_minutes} minutes. New balance: {new_balance} minutes",
            new_balance=new_balance,
        )
