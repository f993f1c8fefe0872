"""
cardhub.api.routers.auth

Identity endpoints: registration, password sign-in, token refresh and password reset.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.api.deps import audit_dep, db_session, identity_dep, settings_dep
from cardhub.errors import Unauthenticated
from cardhub.identity.store import IdentityStore
from cardhub.observability.middleware import client_address
from cardhub.services.audit_logger import Action, AuditLogger
from cardhub.services.user_directory import UserDirectory
from cardhub.settings import Settings

router = APIRouter(prefix="/v1/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=255)
    display_name: str | None = Field(default=None, max_length=256)


class TokenRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=255)


class TokenResponse(BaseModel):
    uid: str
    id_token: str
    token_type: str = "bearer"
    email: str | None = None
    display_name: str | None = None


@router.post("/register", response_model=TokenResponse)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(db_session),
    identity: IdentityStore = Depends(identity_dep),
    audit: AuditLogger = Depends(audit_dep),
    settings: Settings = Depends(settings_dep),
) -> TokenResponse:
    directory = UserDirectory(session=session, identity=identity, audit=audit, settings=settings)
    grant = await directory.register(
        email=body.email, password=body.password, display_name=body.display_name
    )
    user = await identity.get_user(grant.uid)
    return TokenResponse(
        uid=grant.uid,
        id_token=grant.id_token,
        email=user.email if user else None,
        display_name=user.display_name if user else None,
    )


@router.post("/token", response_model=TokenResponse)
async def sign_in(
    request: Request,
    body: TokenRequest,
    identity: IdentityStore = Depends(identity_dep),
    audit: AuditLogger = Depends(audit_dep),
    settings: Settings = Depends(settings_dep),
) -> TokenResponse:
    grant = await identity.authenticate(email=body.email, password=body.password)
    user = await identity.get_user(grant.uid)
    audit.spawn(
        Action.login,
        actor_id=grant.uid,
        actor_email=user.email if user else body.email,
        details="User logged in",
        origin_address=client_address(request, trust_forwarded_for=settings.trust_forwarded_for),
    )
    return TokenResponse(
        uid=grant.uid,
        id_token=grant.id_token,
        email=user.email if user else None,
        display_name=user.display_name if user else None,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityStore = Depends(identity_dep),
) -> TokenResponse:
    # Re-issue from the identity store so claims set since the last token are picked up.
    if creds is None or not creds.credentials:
        raise Unauthenticated("User must be authenticated")
    grant = await identity.refresh(creds.credentials)
    user = await identity.get_user(grant.uid)
    return TokenResponse(
        uid=grant.uid,
        id_token=grant.id_token,
        email=user.email if user else None,
        display_name=user.display_name if user else None,
    )


class PasswordResetRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)


class PasswordResetConfirm(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1, max_length=255)


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(
    body: PasswordResetRequest,
    identity: IdentityStore = Depends(identity_dep),
) -> dict[str, bool]:
    # Same answer whether or not the email exists.
    await identity.request_password_reset(body.email)
    return {"success": True}


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    request: Request,
    body: PasswordResetConfirm,
    identity: IdentityStore = Depends(identity_dep),
    audit: AuditLogger = Depends(audit_dep),
    settings: Settings = Depends(settings_dep),
) -> dict[str, bool]:
    user = await identity.reset_password(body.token, body.new_password)
    audit.spawn(
        Action.update,
        actor_id=user.uid,
        actor_email=user.email,
        details="Password reset",
        origin_address=client_address(request, trust_forwarded_for=settings.trust_forwarded_for),
    )
    return {"success": True}
