"""
cardhub.session.context

Process-wide session context.

Responsibilities:
- Track the session state machine: SignedOut -> Resolving -> SignedIn(role), with a
  blocked profile forcing a sign-out that lands back in SignedOut.
- Publish immutable snapshots to subscribers.
- Offer refresh, logout, activity logging and route gating on top of the current session.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from cardhub.auth.models import AccessTier, tier_allows
from cardhub.clients.api import CardhubApiClient
from cardhub.clients.identity import IdentityClient, SessionUser
from cardhub.errors import CardhubError, PermissionDenied, Unauthenticated
from cardhub.observability.logging import get_logger
from cardhub.session.messages import message
from cardhub.session.resolver import RoleResolver
from cardhub.settings import Settings, get_settings

log = get_logger(__name__)


class SessionState(enum.StrEnum):
    signed_out = "SIGNED_OUT"
    resolving = "RESOLVING"
    signed_in = "SIGNED_IN"


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    state: SessionState
    user: SessionUser | None = None
    role: str | None = None
    # User-visible message attached to the transition (e.g. blocked-account denial).
    notice: str | None = None
    generation: int = 0

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.signed_in

    def can_access(self, tier: AccessTier) -> bool:
        return self.is_authenticated and tier_allows(tier, self.role)


SessionSubscriber = Callable[[SessionSnapshot], None]


class SessionContext:
    """
    Create one per process; `start()` on app start, `close()` on teardown.
    """

    def __init__(
        self,
        *,
        identity: IdentityClient,
        api: CardhubApiClient,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._identity = identity
        self._api = api
        self._locale = settings.locale
        self._resolver = RoleResolver(
            claims=identity,
            profiles=api,
            profile_timeout=settings.profile_fetch_timeout,
        )
        self._snapshot = SessionSnapshot(state=SessionState.signed_out)
        self._subscribers: list[SessionSubscriber] = []
        self._generation = 0
        self._pending_notice: str | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    async def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._identity.on_session_change(self._on_session_change)
        if self._identity.current_user is not None:
            await self._on_session_change(self._identity.current_user)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._generation += 1
        self._publish(SessionSnapshot(state=SessionState.signed_out, generation=self._generation))
        self._subscribers.clear()

    def subscribe(self, subscriber: SessionSubscriber) -> Callable[[], None]:
        """
        Register a subscriber; it is called at once with the current snapshot.
        """

        self._subscribers.append(subscriber)
        self._deliver(subscriber, self._snapshot)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    async def refresh(self) -> SessionSnapshot:
        """
        Force-fetch a new claims token and re-resolve (e.g. after a role change).
        """

        if self._identity.current_user is None:
            return self._snapshot
        # The identity client notifies us on refresh, which re-runs resolution.
        await self._identity.force_refresh_claims()
        return self._snapshot

    async def logout(self) -> SessionSnapshot:
        if self._snapshot.is_authenticated:
            await self.log_activity("logout", "User logged out")
        self._pending_notice = message("signed_out", self._locale)
        await self._identity.sign_out()
        self._pending_notice = None
        return self._snapshot

    async def log_activity(self, action: str, details: str | None = None) -> bool:
        # The server fills in the actor; a failure here never affects the caller's operation.
        try:
            result = await self._api.log_activity(action, details)
        except (CardhubError, httpx.HTTPError) as e:
            log.warning("activity_log_failed", action=action, error=repr(e))
            return False
        return bool(result.get("success"))

    def can_access(self, tier: AccessTier) -> bool:
        return self._snapshot.can_access(tier)

    def require(self, tier: AccessTier) -> SessionSnapshot:
        """
        Route guard: raise unless the current session satisfies `tier`.
        """

        snapshot = self._snapshot
        if not snapshot.is_authenticated:
            raise Unauthenticated(message("not_signed_in", self._locale))
        if not snapshot.can_access(tier):
            raise PermissionDenied(message("permission_denied", self._locale))
        return snapshot

    async def _on_session_change(self, user: SessionUser | None) -> None:
        self._generation += 1
        generation = self._generation

        if user is None:
            notice, self._pending_notice = self._pending_notice, None
            self._publish(
                SessionSnapshot(state=SessionState.signed_out, notice=notice, generation=generation)
            )
            return

        # No role is exposed while resolving.
        self._publish(SessionSnapshot(state=SessionState.resolving, user=user, generation=generation))
        resolution = await self._resolver.resolve(user.uid)

        if generation != self._generation:
            log.info("stale_resolution_discarded", uid=user.uid, generation=generation)
            return

        if resolution.blocked:
            log.warning("blocked_principal_signed_out", uid=user.uid)
            self._pending_notice = message("account_blocked", self._locale)
            await self._identity.sign_out()
            if self._snapshot.state is not SessionState.signed_out:
                self._generation += 1
                self._publish(
                    SessionSnapshot(
                        state=SessionState.signed_out,
                        notice=self._pending_notice,
                        generation=self._generation,
                    )
                )
            self._pending_notice = None
            return

        self._publish(
            SessionSnapshot(
                state=SessionState.signed_in,
                user=user,
                role=resolution.role,
                generation=generation,
            )
        )
        log.info("session_resolved", uid=user.uid, role=resolution.role)

    def _publish(self, snapshot: SessionSnapshot) -> None:
        self._snapshot = snapshot
        for subscriber in list(self._subscribers):
            self._deliver(subscriber, snapshot)

    def _deliver(self, subscriber: SessionSubscriber, snapshot: SessionSnapshot) -> None:
        try:
            subscriber(snapshot)
        except Exception:
            log.exception("session_subscriber_failed", subscriber=repr(subscriber))


# --- Module Notes -----------------------------------------------------------
# Every transition bumps the generation counter; a resolution that finishes after a newer
# transition is discarded, so a slow profile fetch can never overwrite a later sign-out.
