"""
cardhub.session.resolver

Effective-role resolution.

Responsibilities:
- `resolve_effective_role`: the pure two-source merge (claims token vs profile record)
  with block enforcement.
- `RoleResolver`: gather both inputs for the signed-in principal, degrading a failed
  or slow profile fetch to "no profile data".
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from cardhub.observability.logging import get_logger

log = get_logger(__name__)


def resolve_effective_role(
    claim_role: Any,
    profile_role: Any,
    blocked: bool = False,
) -> str | None:
    """
    Claims role if present and non-empty, else profile role, else None.

    A blocked profile always resolves to None, whatever either role says.
    """

    if blocked:
        return None
    return _present(claim_role) or _present(profile_role)


def _present(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True, slots=True)
class ProfileSnapshot:
    uid: str
    role: str | None = None
    blocked: bool = False
    email: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> ProfileSnapshot:
        return cls(
            uid=str(doc.get("id", "")),
            role=doc.get("role"),
            blocked=bool(doc.get("blocked", False)),
            email=doc.get("email"),
        )


class ProfileSource(Protocol):
    async def get_profile(self, uid: str) -> ProfileSnapshot | None: ...


class ClaimsSource(Protocol):
    def current_session_claims(self) -> dict[str, Any] | None: ...


@dataclass(frozen=True, slots=True)
class Resolution:
    role: str | None
    blocked: bool
    claim_role: str | None
    profile: ProfileSnapshot | None


class RoleResolver:
    def __init__(
        self,
        *,
        claims: ClaimsSource,
        profiles: ProfileSource,
        profile_timeout: float = 5.0,
    ) -> None:
        self._claims = claims
        self._profiles = profiles
        self._profile_timeout = profile_timeout

    async def resolve(self, uid: str) -> Resolution:
        claims = self._claims.current_session_claims() or {}
        claim_role = _present(claims.get("role"))
        profile = await self._fetch_profile(uid)
        blocked = bool(profile is not None and profile.blocked)
        role = resolve_effective_role(
            claim_role, profile.role if profile is not None else None, blocked
        )
        return Resolution(role=role, blocked=blocked, claim_role=claim_role, profile=profile)

    async def _fetch_profile(self, uid: str) -> ProfileSnapshot | None:
        # Availability over strictness: the signed claim still decides when present.
        try:
            return await asyncio.wait_for(
                self._profiles.get_profile(uid), timeout=self._profile_timeout
            )
        except TimeoutError:
            log.warning("profile_fetch_timeout", uid=uid, timeout=self._profile_timeout)
        except Exception:
            log.exception("profile_fetch_failed", uid=uid)
        return None


# --- Module Notes -----------------------------------------------------------
# Unknown role strings pass through unchanged: they satisfy the any-role tier only and
# never the admin tier.
