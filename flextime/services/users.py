"""
Parent profiles: users/{uid} = {uid, email, name, createdAt}, created the
first time a parent signs in.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from flextime.core.constants import USERS_COLLECTION
from flextime.core.security import Identity
from flextime.core.time_utils import from_iso, to_iso
from flextime.store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

DEFAULT_PARENT_NAME = "Parent"


@dataclass
class UserProfile:
    uid: str
    email: str
    name: str
    created_at: datetime

    def to_doc(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "email": self.email,
            "name": self.name,
            "createdAt": to_iso(self.created_at),
        }

    @classmethod
    def from_doc(cls, data: dict[str, Any]) -> "UserProfile":
        return cls(
            uid=str(data["uid"]),
            email=str(data.get("email") or ""),
            name=str(data.get("name") or DEFAULT_PARENT_NAME),
            created_at=from_iso(data["createdAt"]),
        )


def ensure_profile(
    store: DocumentStore,
    identity: Identity,
    now: Optional[datetime] = None,
) -> UserProfile:
    """Return the stored profile, creating it on first sign-in.

    Storage failures are logged and an unsaved profile is returned so the
    signed-in parent can keep working.
    """
    fresh = UserProfile(
        uid=identity.uid,
        email=identity.email,
        name=identity.name or DEFAULT_PARENT_NAME,
        created_at=now or datetime.now(tz=timezone.utc),
    )
    try:
        existing = store.get(USERS_COLLECTION, identity.uid)
        if existing is not None:
            return UserProfile.from_doc(existing)
        store.set(USERS_COLLECTION, identity.uid, fresh.to_doc())
    except StoreError as exc:
        logger.warning("Could not load or create profile for %s: %s", identity.uid, exc)
        return fresh
    except (KeyError, TypeError, ValueError):
        logger.warning("Malformed profile for %s, using sign-in details", identity.uid)
        return fresh

    logger.info("Created profile for %s", identity.uid)
    return fresh
