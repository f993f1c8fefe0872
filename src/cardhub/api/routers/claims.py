"""
cardhub.api.routers.claims

Role changes through the claims authority.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.api.deps import audit_dep, db_session, identity_dep
from cardhub.auth.deps import get_caller
from cardhub.auth.models import Caller
from cardhub.identity.store import IdentityStore
from cardhub.services.audit_logger import AuditLogger
from cardhub.services.claims_authority import ClaimsAuthority

router = APIRouter(prefix="/v1/claims", tags=["claims"])


class SetRoleRequest(BaseModel):
    # Optional so missing fields are reported after the privilege check, not before it.
    uid: str | None = None
    role: str | None = None


class SetRoleResponse(BaseModel):
    success: bool
    message: str


@router.post("/set-role", response_model=SetRoleResponse)
async def set_role(
    body: SetRoleRequest,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(db_session),
    identity: IdentityStore = Depends(identity_dep),
    audit: AuditLogger = Depends(audit_dep),
) -> SetRoleResponse:
    authority = ClaimsAuthority(session=session, identity=identity, audit=audit)
    result = await authority.set_role(caller, body.uid, body.role)
    return SetRoleResponse(success=result.success, message=result.message)
