"""
tests.helpers

Direct-to-store helpers used to set up and inspect state behind the API.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI

from cardhub.clients.api import CardhubApiClient
from cardhub.clients.identity import IdentityClient
from cardhub.db.models import ActivityLogEntry, Profile
from cardhub.db.repositories.activity_logs import ActivityLogRepo
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.session.context import SessionContext, SessionSnapshot

PASSWORD = "correct-horse-battery"


@dataclass
class ClientSession:
    identity: IdentityClient
    api: CardhubApiClient
    context: SessionContext
    # Every snapshot delivered to the subscriber, in order.
    seen: list[SessionSnapshot]


async def drain_audit(app: FastAPI) -> None:
    await app.state.audit.drain()


async def activity_entries(app: FastAPI, **filters) -> list[ActivityLogEntry]:
    # Oldest first.
    await drain_audit(app)
    async with app.state.sessionmaker() as session:
        entries = await ActivityLogRepo(session).query(limit=500, **filters)
    return list(reversed(entries))


async def set_profile_role(app: FastAPI, uid: str, role: str | None) -> None:
    # Stands in for the CRUD screens, which write profile fields directly.
    async with app.state.sessionmaker() as session:
        await ProfileRepo(session).upsert(uid, role=role)
        await session.commit()


async def get_profile(app: FastAPI, uid: str) -> Profile | None:
    async with app.state.sessionmaker() as session:
        return await ProfileRepo(session).get(uid)


async def set_profile_blocked(app: FastAPI, uid: str, blocked: bool) -> None:
    async with app.state.sessionmaker() as session:
        await ProfileRepo(session).upsert(uid, blocked=blocked)
        await session.commit()
