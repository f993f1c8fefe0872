"""
tests.test_users_api

Admin user management, profile reads and the activity feed.
"""

from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI

from cardhub.errors import InvalidArgument, NotFound, PermissionDenied
from tests.helpers import (
    PASSWORD,
    activity_entries,
    get_profile,
    set_profile_blocked,
    set_profile_role,
)


async def _admin(make_session, make_admin, email: str = "admin@cardhub.test"):
    await make_admin(email)
    session = await make_session()
    await session.identity.authenticate(email, PASSWORD)
    return session


@pytest.mark.asyncio
async def test_add_list_and_delete_user(app: FastAPI, make_session, make_admin) -> None:
    admin = await _admin(make_session, make_admin)
    admin_uid = admin.identity.current_user.uid

    doc = await admin.api.add_user(
        email="Clerk@CardHub.test",
        password=PASSWORD,
        display_name="Clerk",
        role="employee",
        contact={"phone": "555-0100", "department": "Cards"},
    )
    uid = doc["id"]
    assert doc["email"] == "clerk@cardhub.test"
    assert doc["role"] == "employee"
    assert doc["blocked"] is False
    assert doc["contact"]["department"] == "Cards"
    assert (await app.state.identity.get_user(uid)).custom_claims == {"role": "employee"}

    employees = await admin.api.list_users(role="employee")
    assert [d["id"] for d in employees] == [uid]
    assert {d["id"] for d in await admin.api.list_users()} == {admin_uid, uid}

    assert await admin.api.delete_user(uid) == {"success": True}
    assert await get_profile(app, uid) is None
    with pytest.raises(NotFound):
        await admin.api.delete_user(uid)

    creates = await activity_entries(app, action="create")
    deletes = await activity_entries(app, action="delete")
    assert [e.details for e in creates] == [f"Created user {uid} (clerk@cardhub.test)"]
    assert [e.details for e in deletes] == [f"Deleted user {uid}"]
    assert creates[0].user_id == admin_uid


@pytest.mark.asyncio
async def test_add_user_rejects_bad_input(make_session, make_admin) -> None:
    admin = await _admin(make_session, make_admin)

    with pytest.raises(InvalidArgument) as exc:
        await admin.api.add_user(email="x@cardhub.test", password=PASSWORD, role="superuser")
    assert exc.value.field == "role"

    with pytest.raises(InvalidArgument) as exc:
        await admin.api.add_user(email="x@cardhub.test", password="123")
    assert exc.value.field == "password"

    with pytest.raises(InvalidArgument) as exc:
        await admin.api.add_user(email="admin@cardhub.test", password=PASSWORD)
    assert exc.value.field == "email"


@pytest.mark.asyncio
async def test_block_and_unblock_are_audited(app: FastAPI, make_session, make_admin) -> None:
    admin = await _admin(make_session, make_admin)
    target = await make_session()
    user = await target.identity.register("target@cardhub.test", PASSWORD)

    doc = await admin.api.update_user(user.uid, blocked=True)
    assert doc["blocked"] is True
    doc = await admin.api.update_user(user.uid, blocked=False)
    assert doc["blocked"] is False
    doc = await admin.api.update_user(user.uid, display_name="Target", contact={"phone": "1"})
    assert doc["displayName"] == "Target"

    updates = await activity_entries(
        app, action="update", user_id=admin.identity.current_user.uid
    )
    assert [e.details for e in updates] == [
        f"Blocked user {user.uid}",
        f"Unblocked user {user.uid}",
        f"Updated user {user.uid}: contact, display_name",
    ]

    with pytest.raises(InvalidArgument):
        await admin.api.update_user(user.uid)
    with pytest.raises(NotFound):
        await admin.api.update_user("nobody", blocked=True)


@pytest.mark.asyncio
async def test_non_admin_is_denied_user_management(app: FastAPI, make_session) -> None:
    session = await make_session()
    user = await session.identity.register("emp@cardhub.test", PASSWORD)
    await set_profile_role(app, user.uid, "employee")

    with pytest.raises(PermissionDenied):
        await session.api.list_users()
    with pytest.raises(PermissionDenied):
        await session.api.update_user(user.uid, blocked=False)
    with pytest.raises(PermissionDenied):
        await session.api.list_activity()


@pytest.mark.asyncio
async def test_blocked_admin_is_denied_mutations(
    app: FastAPI, make_session, make_admin, http: httpx.AsyncClient
) -> None:
    admin = await _admin(make_session, make_admin)
    token_headers = admin.identity.auth_headers()
    other = await make_session()
    user = await other.identity.register("other@cardhub.test", PASSWORD)

    await set_profile_blocked(app, admin.identity.current_user.uid, True)

    r = await http.patch(f"/v1/users/{user.uid}", json={"blocked": True}, headers=token_headers)
    assert r.status_code == 403
    assert r.json()["error"] == "permission-denied"


@pytest.mark.asyncio
async def test_profile_reads(app: FastAPI, make_session, make_admin) -> None:
    admin = await _admin(make_session, make_admin)
    emp = await make_session()
    user = await emp.identity.register("emp@cardhub.test", PASSWORD)

    own = await emp.api.get_profile_document(user.uid)
    assert own["email"] == "emp@cardhub.test"
    with pytest.raises(PermissionDenied):
        await emp.api.get_profile_document(admin.identity.current_user.uid)

    assert (await admin.api.get_profile(user.uid)).email == "emp@cardhub.test"
    assert await admin.api.get_profile("nobody") is None


@pytest.mark.asyncio
async def test_activity_feed_filters_newest_first(
    app: FastAPI, make_session, make_admin
) -> None:
    admin = await _admin(make_session, make_admin)
    await app.state.audit.drain()
    uid = admin.identity.current_user.uid

    assert await admin.context.log_activity("card_generated", "Generated card for A")
    assert await admin.context.log_activity("card_generated", "Generated card for B")

    feed = await admin.api.list_activity(action="card_generated")
    assert [e["details"] for e in feed] == ["Generated card for B", "Generated card for A"]
    assert all(e["userId"] == uid for e in feed)
    assert feed[0]["userEmail"] == "admin@cardhub.test"

    assert len(await admin.api.list_activity(limit=1)) == 1
    everything = await admin.api.list_activity(action="all", user_id=uid)
    assert {e["action"] for e in everything} >= {"login", "card_generated"}


@pytest.mark.asyncio
async def test_validation_errors_use_error_body(http: httpx.AsyncClient) -> None:
    r = await http.post("/v1/auth/register", json={"email": "a@cardhub.test"})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "invalid-argument"
    assert body["field"] == "password"

    r = await http.post("/v1/auth/token", json={"email": "a@cardhub.test", "password": "wrong"})
    assert r.status_code == 401
    assert r.json() == {"error": "unauthenticated", "message": "Invalid email or password"}
