"""
cardhub.api.routers.profiles

Profile document reads.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.api.deps import db_session
from cardhub.auth.deps import get_caller
from cardhub.auth.models import Caller, Role
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.errors import NotFound, PermissionDenied
from cardhub.session.resolver import resolve_effective_role

router = APIRouter(prefix="/v1/profiles", tags=["profiles"])


@router.get("/{uid}")
async def get_profile(
    uid: str,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    profiles = ProfileRepo(session)
    # Own profile is always readable (blocked principals included); others need admin.
    if uid != caller.uid:
        own = await profiles.get(caller.uid)
        role = resolve_effective_role(
            caller.claim_role,
            own.role if own is not None else None,
            own.blocked if own is not None else False,
        )
        if role != Role.admin:
            raise PermissionDenied("Only admins can read other profiles")

    profile = await profiles.get(uid)
    if profile is None:
        raise NotFound(f"No profile for user {uid}")
    return profile.to_document()
