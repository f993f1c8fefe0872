"""
cardhub.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions and the shared
  identity store / audit logger created at startup.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardhub.identity.store import IdentityStore
from cardhub.services.audit_logger import AuditLogger
from cardhub.settings import Settings


def settings_dep(request: Request) -> Settings:
    # The app's own settings object, not the env-derived singleton (tests override it).
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Created on app startup in `cardhub.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def identity_dep(request: Request) -> IdentityStore:
    return request.app.state.identity  # type: ignore[attr-defined]


def audit_dep(request: Request) -> AuditLogger:
    return request.app.state.audit  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


# --- Module Notes -----------------------------------------------------------
# Shared singletons live on `app.state`; nothing here reads module-level globals.
