"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest
from fastapi.testclient import TestClient

from flextime.core.errors import (
    AuthenticationRequiredError,
    EntryNotFoundError,
    FlexTimeException,
    LimitReachedError,
    NoWeekDataError,
    ResultCode,
    StoreUnavailableHTTPError,
    VotingLockedError,
    VotingNotOpenError,
    WriteFailedError,
    error_for_result,
)
from flextime.main import create_app


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_voting_locked_error(self):
        err = VotingLockedError(unlocks_at="2026-10-24T00:00:00-05:00")
        assert err.http_status == 409
        assert err.code == "VOTING_LOCKED"
        d = err.to_dict()
        assert d["code"] == "VOTING_LOCKED"
        assert d["details"]["unlocks_at"] == "2026-10-24T00:00:00-05:00"

    def test_voting_not_open_error(self):
        err = VotingNotOpenError(opens_at="2026-10-17T12:00:00-05:00")
        assert err.http_status == 409
        assert err.code == "VOTING_NOT_OPEN"
        assert err.details["opens_at"] == "2026-10-17T12:00:00-05:00"

    def test_authentication_required_error(self):
        err = AuthenticationRequiredError()
        assert err.http_status == 401
        assert err.code == "AUTHENTICATION_REQUIRED"
        assert "details" not in err.to_dict()

    @pytest.mark.parametrize("code,cls,http_status", [
        (ResultCode.LIMIT_REACHED, LimitReachedError, 409),
        (ResultCode.NO_DATA, NoWeekDataError, 404),
        (ResultCode.ENTRY_NOT_FOUND, EntryNotFoundError, 404),
        (ResultCode.STORE_UNAVAILABLE, StoreUnavailableHTTPError, 503),
        (ResultCode.WRITE_FAILED, WriteFailedError, 502),
    ])
    def test_error_for_result(self, code, cls, http_status):
        err = error_for_result(code, "nope", details={"new_balance": 40})
        assert isinstance(err, cls)
        assert err.http_status == http_status
        assert err.code == code
        assert err.to_dict() == {"code": code, "message": "nope", "details": {"new_balance": 40}}

    def test_unknown_result_code_is_internal(self):
        err = error_for_result("SOMETHING_ELSE", "nope")
        assert type(err) is FlexTimeException
        assert err.http_status == 500


# ---------------------------------------------------------------------------
# HTTP envelope
# ---------------------------------------------------------------------------

class TestErrorEnvelope:
    def test_validation_error_shape(self, client):
        r = client.put("/day-preferences/charlie", json={"day": "monday"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "day"

    def test_unknown_participant(self, client):
        r = client.put("/day-preferences/grandma", json={"day": "sunday"})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_missing_token(self, client):
        r = client.post("/flex-time/award")
        assert r.status_code == 401
        assert r.json() == {
            "code": "AUTHENTICATION_REQUIRED",
            "message": "A signed-in parent is required for this action.",
        }

    def test_bad_token(self, client):
        r = client.post("/flex-time/award", headers={"Authorization": "Bearer wrong"})
        assert r.status_code == 401
        assert r.json()["message"] == "Sign-in token is invalid or expired."

    def test_unhandled_error_is_enveloped(self, clock):
        class ExplodingStore:
            def get(self, *args, **kwargs):
                raise RuntimeError("disk on fire")

        app = create_app(store=ExplodingStore(), clock=clock)
        with TestClient(app, raise_server_exceptions=False) as client:
            r = client.get("/day-preferences")
        assert r.status_code == 500
        assert r.json() == {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."}
