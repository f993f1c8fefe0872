"""
cardhub.api.routers.users

Admin user management (listing, adding, blocking, deleting).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.api.deps import audit_dep, db_session, identity_dep, settings_dep
from cardhub.auth.deps import require_tier
from cardhub.auth.models import AccessTier, Caller
from cardhub.identity.store import IdentityStore
from cardhub.services.audit_logger import AuditLogger
from cardhub.services.user_directory import UserDirectory
from cardhub.settings import Settings

router = APIRouter(prefix="/v1/users", tags=["users"])

_admin = require_tier(AccessTier.admin)


class AddUserRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=255)
    display_name: str | None = Field(default=None, max_length=256)
    role: str | None = None
    contact: dict[str, Any] = Field(default_factory=dict)


class UpdateUserRequest(BaseModel):
    blocked: bool | None = None
    display_name: str | None = Field(default=None, max_length=256)
    contact: dict[str, Any] | None = None


def _directory(
    session: AsyncSession = Depends(db_session),
    identity: IdentityStore = Depends(identity_dep),
    audit: AuditLogger = Depends(audit_dep),
    settings: Settings = Depends(settings_dep),
) -> UserDirectory:
    return UserDirectory(session=session, identity=identity, audit=audit, settings=settings)


@router.get("", dependencies=[Depends(_admin)])
async def list_users(
    role: str | None = Query(default=None, max_length=32),
    directory: UserDirectory = Depends(_directory),
) -> list[dict[str, Any]]:
    return [p.to_document() for p in await directory.list_users(role=role)]


@router.post("")
async def add_user(
    body: AddUserRequest,
    caller: Caller = Depends(_admin),
    directory: UserDirectory = Depends(_directory),
) -> dict[str, Any]:
    profile = await directory.add_user(
        caller,
        email=body.email,
        password=body.password,
        display_name=body.display_name,
        role=body.role,
        contact=body.contact,
    )
    return profile.to_document()


@router.patch("/{uid}")
async def update_user(
    uid: str,
    body: UpdateUserRequest,
    caller: Caller = Depends(_admin),
    directory: UserDirectory = Depends(_directory),
) -> dict[str, Any]:
    profile = await directory.update_user(
        caller,
        uid,
        blocked=body.blocked,
        display_name=body.display_name,
        contact=body.contact,
    )
    return profile.to_document()


@router.delete("/{uid}")
async def delete_user(
    uid: str,
    caller: Caller = Depends(_admin),
    directory: UserDirectory = Depends(_directory),
) -> dict[str, bool]:
    await directory.delete_user(caller, uid)
    return {"success": True}
