"""
Custom exception hierarchy for the Flex Time API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages. Service-layer write
results carry the same codes, so `error_for_result` maps them 1:1.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result codes shared with the service layer
# ---------------------------------------------------------------------------

class ResultCode:
    OK                = "OK"
    LIMIT_REACHED     = "LIMIT_REACHED"
    NO_DATA           = "NO_DATA"
    ENTRY_NOT_FOUND   = "ENTRY_NOT_FOUND"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    WRITE_FAILED      = "WRITE_FAILED"


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class FlexTimeException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class LimitReachedError(FlexTimeException):
    http_status = status.HTTP_409_CONFLICT
    code = ResultCode.LIMIT_REACHED


class NoWeekDataError(FlexTimeException):
    http_status = status.HTTP_404_NOT_FOUND
    code = ResultCode.NO_DATA


class EntryNotFoundError(FlexTimeException):
    http_status = status.HTTP_404_NOT_FOUND
    code = ResultCode.ENTRY_NOT_FOUND


class StoreUnavailableHTTPError(FlexTimeException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = ResultCode.STORE_UNAVAILABLE


class WriteFailedError(FlexTimeException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = ResultCode.WRITE_FAILED


class VotingLockedError(FlexTimeException):
    http_status = status.HTTP_409_CONFLICT
    code = "VOTING_LOCKED"

    def __init__(self, unlocks_at: str):
        super().__init__(
            message="Voting is locked until the weekly reset.",
            details={"unlocks_at": unlocks_at},
        )


class VotingNotOpenError(FlexTimeException):
    http_status = status.HTTP_409_CONFLICT
    code = "VOTING_NOT_OPEN"

    def __init__(self, opens_at: str):
        super().__init__(
            message="Voting has not opened yet for this week.",
            details={"opens_at": opens_at},
        )


class AuthenticationRequiredError(FlexTimeException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "A signed-in parent is required for this action."):
        super().__init__(message=message)


_RESULT_ERRORS: dict[str, type[FlexTimeException]] = {
    ResultCode.LIMIT_REACHED: LimitReachedError,
    ResultCode.NO_DATA: NoWeekDataError,
    ResultCode.ENTRY_NOT_FOUND: EntryNotFoundError,
    ResultCode.STORE_UNAVAILABLE: StoreUnavailableHTTPError,
    ResultCode.WRITE_FAILED: WriteFailedError,
}


def error_for_result(code: str, message: str, details: dict[str, Any] | None = None) -> FlexTimeException:
    """Translate a failed service result into the matching HTTP exception."""
    cls = _RESULT_ERRORS.get(code, FlexTimeException)
    return cls(message=message, details=details)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def flextime_exception_handler(request: Request, exc: FlexTimeException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
