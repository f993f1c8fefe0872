"""
cardhub.services.user_directory

Principal/profile lifecycle outside role changes.

Responsibilities:
- Self-registration: principal + profile record + session token.
- Admin user management: list, add, update (block flag, contact fields), delete profile.
- Audit every privileged mutation after it commits.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.auth.models import Caller, Role
from cardhub.db.models import Profile
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.errors import Internal, InvalidArgument, NotFound
from cardhub.identity.store import IdentityStore, SessionGrant
from cardhub.observability.logging import get_logger
from cardhub.services.audit_logger import Action, AuditLogger
from cardhub.services.guards import require_admin_profile
from cardhub.settings import Settings

log = get_logger(__name__)


class UserDirectory:
    def __init__(
        self,
        *,
        session: AsyncSession,
        identity: IdentityStore,
        audit: AuditLogger,
        settings: Settings,
    ) -> None:
        self._session = session
        self._identity = identity
        self._audit = audit
        self._settings = settings
        self._profiles = ProfileRepo(session)

    async def register(
        self, *, email: str, password: str, display_name: str | None = None
    ) -> SessionGrant:
        user = await self._identity.create_user(
            email=email, password=password, display_name=display_name
        )
        # The profile is the document mirror of the new principal.
        await self._profiles.upsert(
            user.uid,
            email=user.email,
            role=self._settings.default_profile_role,
            blocked=False,
            display_name=display_name,
        )
        await self._session.commit()
        return SessionGrant(uid=user.uid, id_token=await self._identity.issue_token(user.uid))

    async def list_users(self, *, role: str | None = None) -> list[Profile]:
        return await self._profiles.list_profiles(role=role)

    async def add_user(
        self,
        caller: Caller,
        *,
        email: str,
        password: str,
        display_name: str | None = None,
        role: str | None = None,
        contact: dict[str, Any] | None = None,
    ) -> Profile:
        admin = await require_admin_profile(self._profiles, caller)
        if role is not None and role not in set(Role):
            raise InvalidArgument("Invalid role", field="role")

        claims = {"role": role} if role is not None else None
        user = await self._identity.create_user(
            email=email, password=password, display_name=display_name, custom_claims=claims
        )
        try:
            profile = await self._profiles.upsert(
                user.uid,
                email=user.email,
                role=role,
                blocked=False,
                display_name=display_name,
                contact=dict(contact or {}),
            )
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            log.exception("add_user_failed", caller=caller.uid, uid=user.uid)
            raise Internal("Failed to add user") from e

        self._audit.spawn(
            Action.create,
            actor_id=caller.uid,
            actor_email=admin.email,
            details=f"Created user {user.uid} ({user.email})",
            origin_address=caller.address,
        )
        return profile

    async def update_user(
        self,
        caller: Caller,
        uid: str,
        *,
        blocked: bool | None = None,
        display_name: str | None = None,
        contact: dict[str, Any] | None = None,
    ) -> Profile:
        admin = await require_admin_profile(self._profiles, caller)
        if await self._profiles.get(uid) is None:
            raise NotFound(f"No profile for user {uid}")

        changes: dict[str, Any] = {}
        if blocked is not None:
            changes["blocked"] = blocked
        if display_name is not None:
            changes["display_name"] = display_name
        if contact is not None:
            changes["contact"] = contact
        if not changes:
            raise InvalidArgument("nothing to update", field="body")

        try:
            profile = await self._profiles.upsert(uid, **changes)
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            log.exception("update_user_failed", caller=caller.uid, uid=uid)
            raise Internal("Failed to update user") from e

        self._audit.spawn(
            Action.update,
            actor_id=caller.uid,
            actor_email=admin.email,
            details=_describe_update(uid, changes),
            origin_address=caller.address,
        )
        return profile

    async def delete_user(self, caller: Caller, uid: str) -> None:
        admin = await require_admin_profile(self._profiles, caller)
        try:
            deleted = await self._profiles.delete(uid)
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            log.exception("delete_user_failed", caller=caller.uid, uid=uid)
            raise Internal("Failed to delete user") from e
        if not deleted:
            raise NotFound(f"No profile for user {uid}")

        self._audit.spawn(
            Action.delete,
            actor_id=caller.uid,
            actor_email=admin.email,
            details=f"Deleted user {uid}",
            origin_address=caller.address,
        )


def _describe_update(uid: str, changes: dict[str, Any]) -> str:
    if set(changes) == {"blocked"}:
        return f"{'Blocked' if changes['blocked'] else 'Unblocked'} user {uid}"
    return f"Updated user {uid}: {', '.join(sorted(changes))}"


# --- Module Notes -----------------------------------------------------------
# Deleting removes only the profile record; the principal stays in the identity store and
# resolves to "no role" unless its token carries a role claim.
