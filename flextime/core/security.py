"""
Parent identity.

Sign-in happens at an external identity provider; this API only verifies
the bearer token it is handed. `IdentityProvider` is the seam: the default
`StaticTokenIdentityProvider` reads PARENT_TOKENS, a deployment fronted by
a hosted provider swaps in its own verifier.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    name: Optional[str] = None


class IdentityProvider(Protocol):
    def verify(self, token: str) -> Optional[Identity]:
        ...


def parse_parent_tokens(raw: str | None) -> dict[str, Identity]:
    """
    Parse "token:uid:email:name" entries separated by commas.
    The name part is optional: "token:uid:email" is accepted.
    """
    if not raw:
        return {}
    tokens: dict[str, Identity] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        parts = [p.strip() for p in item.split(":", 3)]
        if len(parts) < 3 or not all(parts[:3]):
            raise ValueError(f"Invalid PARENT_TOKENS entry: {item!r}")
        name = parts[3] if len(parts) == 4 and parts[3] else None
        tokens[parts[0]] = Identity(uid=parts[1], email=parts[2], name=name)
    return tokens


class StaticTokenIdentityProvider:
    def __init__(self, tokens: dict[str, Identity]) -> None:
        self._tokens = dict(tokens)

    @classmethod
    def from_string(cls, raw: str | None) -> "StaticTokenIdentityProvider":
        return cls(parse_parent_tokens(raw))

    def verify(self, token: str) -> Optional[Identity]:
        return self._tokens.get(token)
