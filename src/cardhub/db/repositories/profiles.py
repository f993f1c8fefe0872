"""
cardhub.db.repositories.profiles

Repository for `Profile` records (one per principal, keyed by principal id).

Responsibilities:
- Read and upsert profile documents.
- Apply role / block / contact changes with `updatedAt` maintenance.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.db.models import Profile, utcnow

_UNSET: Any = object()


class ProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, uid: str) -> Profile | None:
        return await self._session.get(Profile, uid)

    async def upsert(
        self,
        uid: str,
        *,
        email: str | None = _UNSET,
        role: str | None = _UNSET,
        blocked: bool = _UNSET,
        display_name: str | None = _UNSET,
        contact: dict[str, Any] = _UNSET,
    ) -> Profile:
        # Merge semantics: only explicitly passed fields are written.
        profile = await self._session.get(Profile, uid)
        if profile is None:
            profile = Profile(id=uid, blocked=False, contact={})
            self._session.add(profile)
        if email is not _UNSET:
            profile.email = email
        if role is not _UNSET:
            profile.role = role
        if blocked is not _UNSET:
            profile.blocked = bool(blocked)
        if display_name is not _UNSET:
            profile.display_name = display_name
        if contact is not _UNSET:
            profile.contact = {**(profile.contact or {}), **contact}
        profile.updated_at = utcnow()
        await self._session.flush()
        return profile

    async def list_profiles(self, *, role: str | None = None, limit: int = 500) -> list[Profile]:
        stmt = select(Profile).order_by(Profile.created_at).limit(limit)
        if role is not None:
            stmt = stmt.where(Profile.role == role)
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete(self, uid: str) -> bool:
        result = await self._session.execute(delete(Profile).where(Profile.id == uid))
        return bool(result.rowcount)


# --- Module Notes -----------------------------------------------------------
# Profiles are never deleted automatically; `delete` backs the admin user-management path.
