"""
Integration tests for API endpoints. Requests run at a frozen `now`
(Monday 2026-10-19 09:00 America/Chicago unless a test moves it).
"""
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient

from flextime.main import app
from flextime.store import InMemoryDocumentStore, UnavailableDocumentStore

CHICAGO = ZoneInfo("America/Chicago")
MONDAY = datetime(2026, 10, 19, 9, 0, tzinfo=CHICAGO)


def award(client, headers, frozen_now=None, at=None, note=None):
    if frozen_now is not None and at is not None:
        frozen_now.value = at
    body = {"note": note} if note is not None else None
    return client.post("/flex-time/award", json=body, headers=headers)


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "store": "ok", "env": "test"}

    def test_health_without_store(self, make_client):
        r = make_client(UnavailableDocumentStore()).get("/health")
        assert r.status_code == 503
        assert r.json()["store"] == "unconfigured"

    def test_health_with_configured_database(self):
        # Module-level app: store built from DATABASE_URL (SQLite in tests).
        with TestClient(app) as c:
            r = c.get("/health")
            assert r.status_code == 200
            assert r.json()["store"] == "ok"
            assert c.get("/clock").status_code == 200


class TestFlexTime:
    def test_empty_week(self, client):
        r = client.get("/flex-time")
        assert r.status_code == 200
        body = r.json()
        assert body["week_id"] == "2026-10-17"
        assert body["balance"] == 0
        assert body["balance_display"] == "0 min"
        assert body["max_per_week"] == 120
        assert body["remaining"] == 120
        assert body["entries"] == []

    def test_award(self, client, parent_headers):
        r = award(client, parent_headers, note="Unloaded the dishwasher")
        assert r.status_code == 201
        assert r.json() == {
            "success": True,
            "message": "Added 10 minutes! New balance: 10 minutes",
            "new_balance": 10,
        }

        body = client.get("/flex-time").json()
        assert body["balance"] == 10
        entry = body["entries"][0]
        assert entry["added_by"] == "u-parent"
        assert entry["added_by_name"] == "Mom"
        assert entry["note"] == "Unloaded the dishwasher"
        assert body["notes"] == [entry]

    def test_award_without_body(self, client, parent_headers):
        r = client.post("/flex-time/award", headers=parent_headers)
        assert r.status_code == 201
        assert r.json()["new_balance"] == 10

    def test_note_too_long(self, client, parent_headers):
        r = award(client, parent_headers, note="x" * 281)
        assert r.status_code == 422

    def test_award_limit(self, client, parent_headers, frozen_now):
        for i in range(12):
            r = award(client, parent_headers, frozen_now, MONDAY + timedelta(minutes=i))
            assert r.status_code == 201
        assert r.json()["new_balance"] == 120

        r = award(client, parent_headers, frozen_now, MONDAY + timedelta(hours=1))
        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "LIMIT_REACHED"
        assert body["message"] == "Already at maximum flex time (120 minutes) for this week!"
        assert body["details"] == {"new_balance": 120}

        week = client.get("/flex-time").json()
        assert week["balance"] == 120
        assert week["balance_display"] == "2 hours"
        assert week["remaining"] == 0

    def test_delete_entry(self, client, parent_headers, frozen_now):
        for i in range(5):
            award(client, parent_headers, frozen_now, MONDAY + timedelta(minutes=i))
        target = client.get("/flex-time").json()["entries"][2]["timestamp"]

        r = client.delete("/flex-time/entries", params={"timestamp": target}, headers=parent_headers)
        assert r.status_code == 200
        assert r.json()["new_balance"] == 40
        assert r.json()["message"] == "Removed 10 minutes. New balance: 40 minutes"

        week = client.get("/flex-time").json()
        assert week["balance"] == 40
        assert target not in [e["timestamp"] for e in week["entries"]]

    def test_delete_unknown_entry(self, client, parent_headers):
        award(client, parent_headers)
        r = client.delete(
            "/flex-time/entries",
            params={"timestamp": "2026-10-19T08:00:00-05:00"},
            headers=parent_headers,
        )
        assert r.status_code == 404
        assert r.json()["code"] == "ENTRY_NOT_FOUND"
        assert r.json()["details"] == {"new_balance": 10}

    def test_delete_without_week_data(self, client, parent_headers):
        r = client.delete(
            "/flex-time/entries",
            params={"timestamp": "2026-10-19T08:00:00-05:00"},
            headers=parent_headers,
        )
        assert r.status_code == 404
        assert r.json()["code"] == "NO_DATA"

    def test_delete_requires_parent(self, client):
        r = client.delete("/flex-time/entries", params={"timestamp": "2026-10-19T08:00:00-05:00"})
        assert r.status_code == 401

    def test_week_rollover(self, client, parent_headers, frozen_now):
        award(client, parent_headers)
        frozen_now.value = datetime(2026, 10, 24, 0, 0, tzinfo=CHICAGO)
        body = client.get("/flex-time").json()
        assert body["week_id"] == "2026-10-24"
        assert body["balance"] == 0

    def test_unconfigured_store(self, make_client, parent_headers):
        c = make_client(UnavailableDocumentStore())
        assert c.get("/flex-time").json()["balance"] == 0
        r = c.post("/flex-time/award", headers=parent_headers)
        assert r.status_code == 503
        assert r.json()["code"] == "STORE_UNAVAILABLE"

    def test_write_failure(self, make_client, parent_headers):
        r = make_client(InMemoryDocumentStore(fail_writes=True)).post(
            "/flex-time/award", headers=parent_headers
        )
        assert r.status_code == 502
        assert r.json()["code"] == "WRITE_FAILED"


class TestStreak:
    def test_no_streak(self, client):
        assert client.get("/flex-time/streak").json() == {
            "has_streak": False,
            "streak_count": 0,
            "weeks_for_streak": 2,
        }

    def test_streak_after_two_maxed_weeks(self, client, parent_headers, frozen_now):
        for week_monday in (MONDAY - timedelta(days=14), MONDAY - timedelta(days=7)):
            for i in range(12):
                award(client, parent_headers, frozen_now, week_monday + timedelta(minutes=i))
        frozen_now.value = MONDAY
        body = client.get("/flex-time/streak").json()
        assert body["has_streak"] is True
        assert body["streak_count"] == 2


class TestDayPreferences:
    def test_defaults(self, client):
        body = client.get("/day-preferences").json()
        assert body["week_id"] == "2026-10-17"
        assert body["preferences"] == {"charlie": "saturday", "malcolm": "saturday", "henry": "saturday"}
        assert body["winning_day"] == "saturday"

    def test_vote(self, client):
        r = client.put("/day-preferences/henry", json={"day": "sunday"})
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["message"] == "Henry picked Sunday!"
        assert body["preferences"]["preferences"]["henry"] == "sunday"
        assert body["preferences"]["winning_day"] == "saturday"

    def test_majority_sunday(self, client):
        client.put("/day-preferences/charlie", json={"day": "sunday"})
        client.put("/day-preferences/malcolm", json={"day": "sunday"})
        assert client.get("/day-preferences").json()["winning_day"] == "sunday"

    def test_other_week(self, client):
        client.put("/day-preferences/charlie", json={"day": "sunday"})
        body = client.get("/day-preferences", params={"week_id": "2026-10-10"}).json()
        assert body["week_id"] == "2026-10-10"
        assert body["preferences"]["charlie"] == "saturday"

    def test_vote_locked_on_friday(self, client, frozen_now):
        frozen_now.value = datetime(2026, 10, 23, 10, 0, tzinfo=CHICAGO)
        r = client.put("/day-preferences/charlie", json={"day": "sunday"})
        assert r.status_code == 409
        assert r.json()["code"] == "VOTING_LOCKED"
        assert r.json()["details"]["unlocks_at"] == "2026-10-24T00:00:00-05:00"

    def test_vote_not_open_right_after_reset(self, client, frozen_now):
        frozen_now.value = datetime(2026, 10, 17, 8, 0, tzinfo=CHICAGO)
        r = client.put("/day-preferences/charlie", json={"day": "sunday"})
        assert r.status_code == 409
        assert r.json()["code"] == "VOTING_NOT_OPEN"
        assert r.json()["details"]["opens_at"] == "2026-10-17T12:00:00-05:00"

    def test_stream_without_store_sends_defaults(self, make_client):
        r = make_client(UnavailableDocumentStore()).get("/day-preferences/stream")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/event-stream")
        assert r.text.startswith("event: preferences\ndata: ")
        assert '"winning_day":"saturday"' in r.text


class TestClock:
    def test_clock(self, client):
        body = client.get("/clock").json()
        assert body["week_id"] == "2026-10-17"
        assert body["seconds_until_reset"] == 4 * 86400 + 15 * 3600
        assert body["countdown"] == "4d 15h until reset"
        assert body["voting_enabled"] is True
        assert body["decision_locked"] is False
        assert body["in_viewing_window"] is False
        assert body["decision_week_id"] == "2026-10-10"

    def test_clock_in_viewing_window(self, client, frozen_now):
        frozen_now.value = datetime(2026, 10, 18, 11, 0, tzinfo=CHICAGO)
        assert client.get("/clock").json()["in_viewing_window"] is True


class TestUsers:
    def test_me(self, client, parent_headers):
        r = client.get("/users/me", headers=parent_headers)
        assert r.status_code == 200
        body = r.json()
        assert body["uid"] == "u-parent"
        assert body["email"] == "mom@example.com"
        assert body["name"] == "Mom"

    def test_me_requires_token(self, client):
        assert client.get("/users/me").status_code == 401
