"""
tests.test_audit_logger

Activity log writer: validation, failure isolation and entry ordering.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI

from cardhub.errors import InvalidArgument
from cardhub.services.audit_logger import Action, AuditLogger
from tests.helpers import activity_entries


@pytest.mark.asyncio
@pytest.mark.parametrize("action", [None, "", "   "])
async def test_record_rejects_missing_action(app: FastAPI, action: str | None) -> None:
    audit = AuditLogger(app.state.sessionmaker)
    with pytest.raises(InvalidArgument) as exc:
        await audit.record(action, actor_id="u1")
    assert exc.value.field == "action"
    assert await activity_entries(app) == []


@pytest.mark.asyncio
async def test_record_with_only_action_writes_one_entry(app: FastAPI) -> None:
    audit = AuditLogger(app.state.sessionmaker)
    result = await audit.record(Action.login, actor_id="", actor_email="", details="")

    assert result.success
    entries = await activity_entries(app)
    assert len(entries) == 1
    assert entries[0].id == result.entry_id
    assert entries[0].action == "login"
    assert entries[0].user_id == ""
    assert entries[0].timestamp is not None


@pytest.mark.asyncio
async def test_record_accepts_unlisted_action(app: FastAPI) -> None:
    audit = AuditLogger(app.state.sessionmaker)
    assert (await audit.record("card_printed", actor_id="u1")).success
    assert [e.action for e in await activity_entries(app)] == ["card_printed"]


@pytest.mark.asyncio
async def test_store_failure_is_reported_not_raised() -> None:
    def broken_factory():
        raise RuntimeError("store unavailable")

    audit = AuditLogger(broken_factory)  # type: ignore[arg-type]
    result = await audit.record(Action.update, actor_id="u1", details="Updated role")
    assert result.success is False
    assert result.entry_id is None

    # The background variant swallows the failure too.
    task = audit.spawn(Action.update, actor_id="u1")
    await audit.drain()
    assert task.done()
    assert task.result().success is False
    assert audit.pending == 0


@pytest.mark.asyncio
async def test_timestamps_strictly_increase(app: FastAPI) -> None:
    audit = AuditLogger(app.state.sessionmaker)
    for i in range(5):
        audit.spawn(Action.update, actor_id="u1", details=f"change {i}")
    await audit.drain()

    entries = await activity_entries(app)
    stamps = [e.timestamp for e in entries]
    assert len(stamps) == 5
    assert all(a < b for a, b in zip(stamps, stamps[1:]))


@pytest.mark.asyncio
async def test_spawn_validates_before_scheduling(app: FastAPI) -> None:
    audit = AuditLogger(app.state.sessionmaker)
    with pytest.raises(InvalidArgument):
        audit.spawn("")
    assert audit.pending == 0
