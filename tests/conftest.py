"""
tests.conftest

Shared fixtures: an app on a throwaway SQLite file, an in-process HTTP client, and
helpers for building client sessions and bootstrapping admins.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from cardhub.api.app import create_app
from cardhub.bootstrap import ensure_admin
from cardhub.clients.api import CardhubApiClient
from cardhub.clients.identity import IdentityClient
from cardhub.identity.store import PrincipalRecord
from cardhub.session.context import SessionContext, SessionSnapshot
from cardhub.settings import Settings
from tests.helpers import PASSWORD, ClientSession


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'cardhub.db'}",
        jwt_secret="test-secret-0123456789abcdef0123456789",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx's ASGITransport does not run lifespan events; drive them explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def http(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_session(
    http: httpx.AsyncClient, settings: Settings
) -> AsyncIterator[Callable[[], Awaitable[ClientSession]]]:
    created: list[ClientSession] = []

    async def _make() -> ClientSession:
        identity = IdentityClient(http=http)
        api = CardhubApiClient(http=http, identity=identity)
        context = SessionContext(identity=identity, api=api, settings=settings)
        seen: list[SessionSnapshot] = []
        context.subscribe(seen.append)
        await context.start()
        session = ClientSession(identity=identity, api=api, context=context, seen=seen)
        created.append(session)
        return session

    yield _make

    for session in created:
        await session.context.close()


@pytest_asyncio.fixture
async def make_admin(app: FastAPI) -> Callable[[str], Awaitable[PrincipalRecord]]:
    async def _make(email: str) -> PrincipalRecord:
        return await ensure_admin(
            session_factory=app.state.sessionmaker,
            identity=app.state.identity,
            audit=app.state.audit,
            email=email,
            password=PASSWORD,
        )

    return _make
