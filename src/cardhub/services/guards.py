"""
cardhub.services.guards

Privilege checks shared by the mutating services.
"""

from __future__ import annotations

from cardhub.auth.models import Caller, Role
from cardhub.db.models import Profile
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.errors import PermissionDenied, Unauthenticated
from cardhub.observability.logging import get_logger

log = get_logger(__name__)


async def require_admin_profile(
    profiles: ProfileRepo,
    caller: Caller | None,
    *,
    denied_message: str = "Only admins can perform this action",
) -> Profile:
    """
    Admit the caller only if their *profile* says admin and they are not blocked.

    The token's role claim is ignored here: it may predate a demotion.
    """

    if caller is None:
        raise Unauthenticated("User must be authenticated")
    profile = await profiles.get(caller.uid)
    if profile is None or profile.role != Role.admin or profile.blocked:
        log.warning("admin_check_denied", caller=caller.uid, claim_role=caller.claim_role)
        raise PermissionDenied(denied_message)
    return profile
