"""
cardhub.services.activity

Activity logging entry points outside the claims authority.

Responsibilities:
- `log_activity`: record a UI-triggered event for the current caller.
- `registered_hook`: the one-time "User registered" entry for new principals.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.auth.models import Caller
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.errors import Internal, Unauthenticated
from cardhub.identity.store import PrincipalRecord, UserCreatedHook
from cardhub.services.audit_logger import Action, AuditLogger, RecordResult

REGISTERED_DETAILS = "User registered"


async def log_activity(
    *,
    session: AsyncSession,
    audit: AuditLogger,
    caller: Caller | None,
    action: str | None,
    details: str | None,
) -> RecordResult:
    """
    Record `action` with the actor filled in from the caller's session.

    Here the write is the primary operation, so a failed write is reported as Internal.
    """

    if caller is None:
        raise Unauthenticated("User must be authenticated")

    profile = await ProfileRepo(session).get(caller.uid)
    email = (profile.email if profile is not None else None) or caller.email
    result = await audit.record(
        action,
        actor_id=caller.uid,
        actor_email=email,
        details=details or "",
        origin_address=caller.address,
    )
    if not result.success:
        raise Internal("Failed to log activity")
    return result


def registered_hook(audit: AuditLogger) -> UserCreatedHook:
    async def _on_created(user: PrincipalRecord) -> None:
        # Distinct from ordinary logins by its details text; no origin address is known.
        audit.spawn(
            Action.login,
            actor_id=user.uid,
            actor_email=user.email,
            details=REGISTERED_DETAILS,
        )

    return _on_created


# --- Module Notes -----------------------------------------------------------
# Ordinary password logins are recorded by the auth router with details "User logged in".
