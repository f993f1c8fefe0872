"""
cardhub.auth.models

Auth domain models.

Responsibilities:
- Define the role enum and the route gating tiers.
- Define the authenticated caller identity (`Caller`) injected into endpoints.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Role(enum.StrEnum):
    # Stored in claims tokens and profile records; treat as stable API contract.
    admin = "admin"
    employee = "employee"


class AccessTier(enum.StrEnum):
    authenticated = "authenticated"
    admin = "admin"


def tier_allows(tier: AccessTier, role: str | None) -> bool:
    """
    Route gating: any non-empty role passes `authenticated`; only `admin` passes `admin`.
    """

    if not role:
        return False
    if tier is AccessTier.admin:
        return role == Role.admin
    return True


@dataclass(frozen=True, slots=True)
class Caller:
    """
    Authenticated caller identity, taken from a verified session token.
    """

    uid: str
    email: str | None
    claim_role: str | None
    address: str | None = None


# --- Module Notes -----------------------------------------------------------
# `Caller.claim_role` is what the token says; privileged decisions re-read the profile.
