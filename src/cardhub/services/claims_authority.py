"""
cardhub.services.claims_authority

The only path by which a principal's authorization level changes.

Responsibilities:
- Gate role changes on the caller's *profile* role (not the token's).
- Validate the target and requested role.
- Set the target's `role` custom claim, mirror it on the profile record, and
  schedule one `update` activity entry.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.auth.models import Caller, Role
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.errors import Internal, InvalidArgument, NotFound
from cardhub.identity.store import IdentityStore
from cardhub.observability.logging import get_logger
from cardhub.services.audit_logger import Action, AuditLogger
from cardhub.services.guards import require_admin_profile

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SetRoleResult:
    success: bool
    message: str


class ClaimsAuthority:
    def __init__(
        self,
        *,
        session: AsyncSession,
        identity: IdentityStore,
        audit: AuditLogger,
    ) -> None:
        self._session = session
        self._identity = identity
        self._audit = audit
        self._profiles = ProfileRepo(session)

    async def set_role(
        self,
        caller: Caller | None,
        target_uid: str | None,
        new_role: str | None,
    ) -> SetRoleResult:
        # 1-2. Authentication, then privilege from the caller's profile (not the token).
        caller_profile = await require_admin_profile(
            self._profiles, caller, denied_message="Only admins can set user roles"
        )

        # 3. Arguments.
        if not target_uid or not new_role:
            raise InvalidArgument(
                "uid and role are required", field="uid" if not target_uid else "role"
            )
        if new_role not in set(Role):
            raise InvalidArgument("Invalid role", field="role")
        role = Role(new_role)

        target = await self._identity.get_user(target_uid)
        if target is None:
            raise InvalidArgument(f"No user with id {target_uid}", field="uid")

        previous = await self._profiles.get(target_uid)
        old_role = previous.role if previous is not None else None
        target_email = (previous.email if previous is not None else None) or target.email

        try:
            # a. Claims: visible only in tokens issued after this call.
            await self._identity.set_custom_claims(target_uid, {"role": role.value})
            # b. Profile mirror; recreated from the principal if it was deleted.
            await self._profiles.upsert(target_uid, role=role.value, email=target_email)
            await self._session.commit()
        except NotFound as e:
            # Principal vanished between the existence check and the write.
            await self._session.rollback()
            raise InvalidArgument(f"No user with id {target_uid}", field="uid") from e
        except Exception as e:
            await self._session.rollback()
            log.exception(
                "set_role_failed", caller=caller.uid, target=target_uid, role=role.value
            )
            raise Internal("Failed to set user role") from e

        log.info(
            "role_changed",
            caller=caller.uid,
            target=target_uid,
            target_email=target_email,
            old_role=old_role,
            new_role=role.value,
        )

        # c. Audit, after the change is committed; never affects the result.
        self._audit.spawn(
            Action.update,
            actor_id=caller.uid,
            actor_email=caller_profile.email,
            details=f"Updated role of user {target_uid} to {role.value}",
            origin_address=caller.address,
        )
        return SetRoleResult(success=True, message=f"User role set to {role.value}")


# --- Module Notes -----------------------------------------------------------
# No version check guards concurrent calls against the same target: the last profile
# write wins. Re-invoking with the same role is safe and is the recovery path for Internal.
