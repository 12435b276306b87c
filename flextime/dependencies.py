"""
FastAPI dependencies.

The store, clock and identity provider are built once in the app lifespan
and kept on `app.state`; tests swap them through `app.dependency_overrides`
or by assigning `app.state` before the client starts.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from flextime.core.errors import AuthenticationRequiredError
from flextime.core.security import Identity, IdentityProvider
from flextime.services.day_preferences import DayPreferenceVoter
from flextime.services.ledger import BalanceLedger
from flextime.services.streak import StreakEvaluator
from flextime.services.users import UserProfile, ensure_profile
from flextime.services.week_clock import WeekClock
from flextime.store import DocumentStore

_bearer = HTTPBearer(auto_error=False)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_clock(request: Request) -> WeekClock:
    return request.app.state.clock


def get_now(clock: WeekClock = Depends(get_clock)) -> datetime:
    return clock.now()


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_current_parent(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    if credentials is None:
        raise AuthenticationRequiredError()
    identity = provider.verify(credentials.credentials)
    if identity is None:
        raise AuthenticationRequiredError("Sign-in token is invalid or expired.")
    return identity


def get_parent_profile(
    identity: Identity = Depends(get_current_parent),
    store: DocumentStore = Depends(get_store),
) -> UserProfile:
    return ensure_profile(store, identity)


def get_ledger(
    store: DocumentStore = Depends(get_store),
    clock: WeekClock = Depends(get_clock),
) -> BalanceLedger:
    return BalanceLedger(store, clock)


def get_streak_evaluator(
    store: DocumentStore = Depends(get_store),
    clock: WeekClock = Depends(get_clock),
) -> StreakEvaluator:
    return StreakEvaluator(store, clock)


def get_voter(
    store: DocumentStore = Depends(get_store),
    clock: WeekClock = Depends(get_clock),
) -> DayPreferenceVoter:
    return DayPreferenceVoter(store, clock)
