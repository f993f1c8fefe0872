"""
cardhub.clients.identity

Client for the identity endpoints.

Responsibilities:
- Sign in / register / sign out and keep the current session token in memory.
- Request and confirm password resets.
- Expose the current token's claims and force-refresh them.
- Notify `on_session_change` listeners on sign-in, sign-out and token refresh.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from cardhub.auth.jwt import JwtValidationError, decode_unverified
from cardhub.clients import raise_for_error
from cardhub.errors import Unauthenticated
from cardhub.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SessionUser:
    uid: str
    email: str | None
    display_name: str | None = None


SessionListener = Callable[[SessionUser | None], Awaitable[None]]


class IdentityClient:
    def __init__(self, *, http: httpx.AsyncClient) -> None:
        self._http = http
        self._user: SessionUser | None = None
        self._token: str | None = None
        self._claims: dict[str, Any] | None = None
        self._listeners: list[SessionListener] = []

    @property
    def current_user(self) -> SessionUser | None:
        return self._user

    @property
    def id_token(self) -> str | None:
        return self._token

    def auth_headers(self) -> dict[str, str]:
        if self._token is None:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener; returns a callable that unregisters it.
        """

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def authenticate(self, email: str, password: str) -> SessionUser:
        r = await self._http.post("/v1/auth/token", json={"email": email, "password": password})
        raise_for_error(r)
        return await self._establish(r.json())

    async def register(
        self, email: str, password: str, display_name: str | None = None
    ) -> SessionUser:
        r = await self._http.post(
            "/v1/auth/register",
            json={"email": email, "password": password, "display_name": display_name},
        )
        raise_for_error(r)
        return await self._establish(r.json())

    async def request_password_reset(self, email: str) -> None:
        r = await self._http.post("/v1/auth/password-reset", json={"email": email})
        raise_for_error(r)

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        # Does not sign in; the caller authenticates with the new password afterwards.
        r = await self._http.post(
            "/v1/auth/password-reset/confirm",
            json={"token": token, "new_password": new_password},
        )
        raise_for_error(r)

    def current_session_claims(self) -> dict[str, Any] | None:
        # Cached claims of the current token; no network.
        return dict(self._claims) if self._claims is not None else None

    async def force_refresh_claims(self) -> dict[str, Any]:
        if self._token is None:
            raise Unauthenticated("No active session")
        r = await self._http.post("/v1/auth/refresh", headers=self.auth_headers())
        raise_for_error(r)
        self._set_token(r.json()["id_token"])
        await self._notify()
        return dict(self._claims or {})

    async def sign_out(self) -> None:
        if self._token is None and self._user is None:
            return
        self._user = None
        self._token = None
        self._claims = None
        await self._notify()

    async def _establish(self, body: dict[str, Any]) -> SessionUser:
        self._set_token(body["id_token"])
        claims = self._claims or {}
        self._user = SessionUser(
            uid=str(body.get("uid") or claims.get("sub")),
            email=body.get("email") or claims.get("email"),
            display_name=body.get("display_name"),
        )
        log.info("session_established", uid=self._user.uid)
        await self._notify()
        return self._user

    def _set_token(self, token: str) -> None:
        try:
            claims = decode_unverified(token)
        except JwtValidationError as e:
            raise Unauthenticated(f"Malformed session token: {e}") from e
        self._token = token
        self._claims = claims

    async def _notify(self) -> None:
        user = self._user
        for listener in list(self._listeners):
            await listener(user)


# --- Module Notes -----------------------------------------------------------
# Listeners are awaited in registration order, so a refresh or sign-in call returns only
# after every subscriber has processed the change.
