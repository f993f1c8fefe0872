"""
cardhub.identity.store

Server-side identity store.

Responsibilities:
- Create principals and authenticate them by email/password.
- Issue, verify and refresh session tokens that embed the principal's custom claims.
- Replace custom claims (the only way a principal's token role can change).
- Notify `on_user_created` hooks after a principal is committed.
- Password reset: mint single-use reset tokens for delivery hooks, then redeem them.
"""

from __future__ import annotations

import hashlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardhub.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from cardhub.auth.passwords import hash_password, verify_password
from cardhub.db.repositories.principals import PrincipalRepo
from cardhub.errors import InvalidArgument, NotFound, Unauthenticated
from cardhub.observability.logging import get_logger
from cardhub.settings import Settings

log = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True, slots=True)
class PrincipalRecord:
    uid: str
    email: str
    display_name: str | None
    custom_claims: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SessionGrant:
    uid: str
    id_token: str


UserCreatedHook = Callable[[PrincipalRecord], Awaitable[None]]
# Receives the principal and its reset token; responsible for delivering it (e.g. email).
PasswordResetHook = Callable[[PrincipalRecord, str], Awaitable[None]]

# Reset tokens use their own audience so they can never pass as session tokens.
RESET_AUDIENCE_SUFFIX = ":password-reset"


def jwt_config(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
    )


class IdentityStore:
    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._cfg = jwt_config(settings)
        self._ttl = timedelta(minutes=settings.token_ttl_minutes)
        self._created_hooks: list[UserCreatedHook] = []
        self._reset_cfg = replace(self._cfg, audience=self._cfg.audience + RESET_AUDIENCE_SUFFIX)
        self._reset_ttl = timedelta(minutes=settings.password_reset_ttl_minutes)
        self._reset_hooks: list[PasswordResetHook] = []

    def on_user_created(self, hook: UserCreatedHook) -> None:
        self._created_hooks.append(hook)

    def on_password_reset_requested(self, hook: PasswordResetHook) -> None:
        self._reset_hooks.append(hook)

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        display_name: str | None = None,
        custom_claims: dict[str, Any] | None = None,
    ) -> PrincipalRecord:
        email = _normalize_email(email)
        _check_password(password)

        async with self._session_factory() as session:
            repo = PrincipalRepo(session)
            if await repo.get_by_email(email) is not None:
                raise InvalidArgument("email already in use", field="email")
            try:
                account = await repo.create(
                    email=email,
                    password_hash=hash_password(password),
                    display_name=display_name,
                    custom_claims=custom_claims,
                )
                await session.commit()
            except IntegrityError as e:
                # Lost a race against a concurrent registration of the same email.
                raise InvalidArgument("email already in use", field="email") from e

        record = _to_record(account)
        log.info("principal_created", uid=record.uid)
        for hook in self._created_hooks:
            try:
                await hook(record)
            except Exception:
                log.exception("user_created_hook_failed", uid=record.uid, hook=repr(hook))
        return record

    async def get_user(self, uid: str) -> PrincipalRecord | None:
        async with self._session_factory() as session:
            account = await PrincipalRepo(session).get(uid)
        return _to_record(account) if account is not None else None

    async def get_user_by_email(self, email: str) -> PrincipalRecord | None:
        async with self._session_factory() as session:
            account = await PrincipalRepo(session).get_by_email(email.strip())
        return _to_record(account) if account is not None else None

    async def authenticate(self, *, email: str, password: str) -> SessionGrant:
        async with self._session_factory() as session:
            account = await PrincipalRepo(session).get_by_email(email.strip())
        hashed = account.password_hash if account is not None else None
        if not verify_password(password or "", hashed) or account is None:
            raise Unauthenticated("Invalid email or password")
        return SessionGrant(uid=account.id, id_token=self._mint(_to_record(account)))

    async def issue_token(self, uid: str) -> str:
        record = await self.get_user(uid)
        if record is None:
            raise Unauthenticated("Unknown principal")
        return self._mint(record)

    def verify_token(self, token: str) -> dict[str, Any]:
        try:
            return decode_and_validate(cfg=self._cfg, token=token)
        except JwtValidationError as e:
            raise Unauthenticated(f"Invalid session token: {e}") from e

    async def refresh(self, token: str) -> SessionGrant:
        """
        Re-issue a token for the same principal, picking up claims set since it was minted.
        """

        claims = self.verify_token(token)
        uid = str(claims["sub"])
        return SessionGrant(uid=uid, id_token=await self.issue_token(uid))

    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            account = await PrincipalRepo(session).set_custom_claims(uid, claims)
            if account is None:
                raise NotFound(f"No principal with id {uid}")
            await session.commit()
        log.info("custom_claims_set", uid=uid, claims=sorted(claims))

    async def request_password_reset(self, email: str) -> None:
        """
        Mint a reset token for `email` and hand it to the delivery hooks.

        Unknown emails are ignored silently so callers cannot tell which accounts exist.
        """

        async with self._session_factory() as session:
            account = await PrincipalRepo(session).get_by_email((email or "").strip())
        if account is None:
            log.info("password_reset_unknown_email")
            return
        if not self._reset_hooks:
            log.warning("password_reset_not_delivered", uid=account.id)
            return

        record = _to_record(account)
        token = issue_token(
            cfg=self._reset_cfg,
            subject=record.uid,
            email=record.email,
            claims={"pwd": _password_fingerprint(account.password_hash)},
            ttl=self._reset_ttl,
        )
        for hook in self._reset_hooks:
            try:
                await hook(record, token)
            except Exception:
                log.exception("password_reset_hook_failed", uid=record.uid, hook=repr(hook))

    async def reset_password(self, token: str, new_password: str) -> PrincipalRecord:
        try:
            claims = decode_and_validate(cfg=self._reset_cfg, token=token)
        except JwtValidationError as e:
            raise InvalidArgument("Invalid or expired reset token", field="token") from e
        _check_password(new_password)

        uid = str(claims["sub"])
        async with self._session_factory() as session:
            repo = PrincipalRepo(session)
            account = await repo.get(uid)
            # The fingerprint changes with the password, which makes each token single-use.
            if account is None or claims.get("pwd") != _password_fingerprint(
                account.password_hash
            ):
                raise InvalidArgument("Invalid or expired reset token", field="token")
            await repo.set_password_hash(uid, hash_password(new_password))
            await session.commit()
            record = _to_record(account)
        log.info("password_reset", uid=uid)
        return record

    def _mint(self, record: PrincipalRecord) -> str:
        return issue_token(
            cfg=self._cfg,
            subject=record.uid,
            email=record.email,
            claims=record.custom_claims,
            ttl=self._ttl,
        )


def _check_password(password: str | None) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InvalidArgument(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )


def _password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    local, sep, domain = email.partition("@")
    if not sep or not local or "." not in domain:
        raise InvalidArgument("a valid email is required", field="email")
    return email


def _to_record(account: Any) -> PrincipalRecord:
    return PrincipalRecord(
        uid=account.id,
        email=account.email,
        display_name=account.display_name,
        custom_claims=dict(account.custom_claims or {}),
    )


# --- Module Notes -----------------------------------------------------------
# Tokens already issued keep the claims they were minted with until refreshed or expired.
