"""
cardhub.auth.deps

FastAPI dependency functions for authentication and route gating.

Responsibilities:
- Convert a bearer token into a typed `Caller`.
- Gate routes on the caller's effective role (token claim merged with profile),
  denying blocked callers.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.api.deps import db_session, identity_dep, settings_dep
from cardhub.auth.models import AccessTier, Caller, tier_allows
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.errors import PermissionDenied, Unauthenticated
from cardhub.identity.store import IdentityStore
from cardhub.observability.middleware import client_address
from cardhub.session.resolver import resolve_effective_role
from cardhub.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def get_caller(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityStore = Depends(identity_dep),
    settings: Settings = Depends(settings_dep),
) -> Caller:
    if creds is None or not creds.credentials:
        raise Unauthenticated("User must be authenticated")

    payload = identity.verify_token(creds.credentials)
    subject = str(payload.get("sub", ""))
    if not subject:
        raise Unauthenticated("Invalid token subject")

    role = payload.get("role")
    return Caller(
        uid=subject,
        email=payload.get("email"),
        claim_role=role if isinstance(role, str) else None,
        address=client_address(request, trust_forwarded_for=settings.trust_forwarded_for),
    )


def require_tier(tier: AccessTier):
    async def _dep(
        caller: Caller = Depends(get_caller),
        session: AsyncSession = Depends(db_session),
    ) -> Caller:
        profile = await ProfileRepo(session).get(caller.uid)
        if profile is not None and profile.blocked:
            raise PermissionDenied("Account is blocked")
        role = resolve_effective_role(
            caller.claim_role, profile.role if profile is not None else None
        )
        if not tier_allows(tier, role):
            raise PermissionDenied("Insufficient role")
        return caller

    return _dep


# --- Module Notes -----------------------------------------------------------
# Route gating trusts the token claim first, like the client. Role changes themselves are
# gated separately on the profile role (see `services.claims_authority`).
