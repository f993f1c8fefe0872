"""
tests.test_claims_authority

Role changes through `POST /v1/claims/set-role`.

Responsibilities:
- Check the rejection order (authentication, privilege, arguments).
- Check that a successful change updates claims and profile and logs exactly one entry.
"""

from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI

from cardhub.errors import InvalidArgument, PermissionDenied
from cardhub.session.context import SessionState
from tests.helpers import PASSWORD, activity_entries, get_profile, set_profile_role


async def _signed_up(make_session, email: str):
    session = await make_session()
    await session.identity.register(email, PASSWORD)
    return session


async def _admin_session(make_session, make_admin, email: str = "admin@cardhub.test"):
    await make_admin(email)
    session = await make_session()
    await session.identity.authenticate(email, PASSWORD)
    return session


@pytest.mark.asyncio
async def test_set_role_requires_authentication(http: httpx.AsyncClient, app: FastAPI) -> None:
    r = await http.post("/v1/claims/set-role", json={"uid": "someone", "role": "admin"})
    assert r.status_code == 401
    assert r.json()["error"] == "unauthenticated"

    r = await http.post(
        "/v1/claims/set-role",
        json={"uid": "someone", "role": "admin"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert r.status_code == 401
    assert await activity_entries(app, action="update") == []


@pytest.mark.asyncio
async def test_employee_cannot_set_roles(app: FastAPI, make_session) -> None:
    employee = await _signed_up(make_session, "emp@cardhub.test")
    await set_profile_role(app, employee.identity.current_user.uid, "employee")
    target = await _signed_up(make_session, "target@cardhub.test")
    target_uid = target.identity.current_user.uid

    with pytest.raises(PermissionDenied):
        await employee.api.set_role(target_uid, "admin")
    # Privilege is checked before the arguments are looked at.
    with pytest.raises(PermissionDenied):
        await employee.api.set_role(target_uid, "superuser")

    assert (await get_profile(app, target_uid)).role is None
    assert await activity_entries(app, action="update") == []


@pytest.mark.asyncio
async def test_demoted_admin_with_stale_token_is_denied(
    app: FastAPI, make_session, make_admin
) -> None:
    admin = await _admin_session(make_session, make_admin)
    assert admin.identity.current_session_claims()["role"] == "admin"
    target = await _signed_up(make_session, "target@cardhub.test")

    # Demoted on the profile only; the token in hand still says admin.
    await set_profile_role(app, admin.identity.current_user.uid, "employee")

    with pytest.raises(PermissionDenied):
        await admin.api.set_role(target.identity.current_user.uid, "employee")
    assert await activity_entries(
        app, action="update", user_id=admin.identity.current_user.uid
    ) == []


@pytest.mark.asyncio
async def test_invalid_role_changes_nothing(app: FastAPI, make_session, make_admin) -> None:
    admin = await _admin_session(make_session, make_admin)
    target = await _signed_up(make_session, "target@cardhub.test")
    target_uid = target.identity.current_user.uid

    with pytest.raises(InvalidArgument) as exc:
        await admin.api.set_role(target_uid, "superuser")
    assert exc.value.field == "role"

    assert (await app.state.identity.get_user(target_uid)).custom_claims == {}
    assert (await get_profile(app, target_uid)).role is None
    assert await activity_entries(
        app, action="update", user_id=admin.identity.current_user.uid
    ) == []


@pytest.mark.asyncio
async def test_missing_arguments_and_unknown_target(
    http: httpx.AsyncClient, make_session, make_admin
) -> None:
    admin = await _admin_session(make_session, make_admin)
    headers = admin.identity.auth_headers()

    r = await http.post("/v1/claims/set-role", json={"role": "admin"}, headers=headers)
    assert r.status_code == 400
    assert r.json() == {
        "error": "invalid-argument",
        "message": "uid and role are required",
        "field": "uid",
    }

    r = await http.post("/v1/claims/set-role", json={"uid": "nobody"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["field"] == "role"

    with pytest.raises(InvalidArgument) as exc:
        await admin.api.set_role("nobody", "employee")
    assert exc.value.field == "uid"


@pytest.mark.asyncio
async def test_promotion_applies_on_refresh(app: FastAPI, make_session, make_admin) -> None:
    admin = await _admin_session(make_session, make_admin)
    admin_uid = admin.identity.current_user.uid
    user_b = await _signed_up(make_session, "b@cardhub.test")
    b_uid = user_b.identity.current_user.uid
    assert user_b.context.snapshot.state is SessionState.signed_in
    assert user_b.context.snapshot.role is None

    result = await admin.api.set_role(b_uid, "admin")
    assert result == {"success": True, "message": "User role set to admin"}

    assert (await get_profile(app, b_uid)).role == "admin"
    assert (await app.state.identity.get_user(b_uid)).custom_claims == {"role": "admin"}
    updates = await activity_entries(app, action="update", user_id=admin_uid)
    assert len(updates) == 1
    assert updates[0].user_id == admin_uid
    assert updates[0].user_email == "admin@cardhub.test"
    assert updates[0].details == f"Updated role of user {b_uid} to admin"

    # B's live session keeps its old role until it refreshes.
    assert user_b.context.snapshot.role is None
    assert "role" not in user_b.identity.current_session_claims()

    snapshot = await user_b.context.refresh()
    assert snapshot.role == "admin"
    assert user_b.identity.current_session_claims()["role"] == "admin"


@pytest.mark.asyncio
async def test_set_role_is_idempotent(app: FastAPI, make_session, make_admin) -> None:
    admin = await _admin_session(make_session, make_admin)
    target = await _signed_up(make_session, "target@cardhub.test")
    target_uid = target.identity.current_user.uid

    await admin.api.set_role(target_uid, "employee")
    await admin.api.set_role(target_uid, "employee")

    assert (await get_profile(app, target_uid)).role == "employee"
    assert (await app.state.identity.get_user(target_uid)).custom_claims == {"role": "employee"}
    updates = await activity_entries(
        app, action="update", user_id=admin.identity.current_user.uid
    )
    assert [e.details for e in updates] == [
        f"Updated role of user {target_uid} to employee",
        f"Updated role of user {target_uid} to employee",
    ]


@pytest.mark.asyncio
async def test_failed_audit_write_keeps_role_change(
    app: FastAPI, make_session, make_admin, monkeypatch: pytest.MonkeyPatch
) -> None:
    admin = await _admin_session(make_session, make_admin)
    target = await _signed_up(make_session, "target@cardhub.test")
    target_uid = target.identity.current_user.uid
    await app.state.audit.drain()

    def unavailable_store():
        raise RuntimeError("activity store unavailable")

    monkeypatch.setattr(app.state.audit, "_session_factory", unavailable_store)

    result = await admin.api.set_role(target_uid, "employee")
    assert result == {"success": True, "message": "User role set to employee"}
    await app.state.audit.drain()

    assert (await get_profile(app, target_uid)).role == "employee"
    assert (await app.state.identity.get_user(target_uid)).custom_claims == {"role": "employee"}
    assert await activity_entries(
        app, action="update", user_id=admin.identity.current_user.uid
    ) == []


@pytest.mark.asyncio
async def test_claims_store_failure_is_generic_internal(
    app: FastAPI,
    http: httpx.AsyncClient,
    make_session,
    make_admin,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    admin = await _admin_session(make_session, make_admin)
    target = await _signed_up(make_session, "target@cardhub.test")
    target_uid = target.identity.current_user.uid

    async def failing_set_custom_claims(uid, claims):
        raise RuntimeError("claims backend db-host-17 refused connection")

    monkeypatch.setattr(app.state.identity, "set_custom_claims", failing_set_custom_claims)

    r = await http.post(
        "/v1/claims/set-role",
        json={"uid": target_uid, "role": "employee"},
        headers=admin.identity.auth_headers(),
    )
    assert r.status_code == 500
    assert r.json() == {"error": "internal", "message": "Failed to set user role"}
    assert "db-host-17" not in r.text

    assert (await get_profile(app, target_uid)).role is None
    assert await activity_entries(
        app, action="update", user_id=admin.identity.current_user.uid
    ) == []


@pytest.mark.asyncio
async def test_set_role_recreates_deleted_profile_with_email(
    app: FastAPI, make_session, make_admin
) -> None:
    admin = await _admin_session(make_session, make_admin)
    target = await _signed_up(make_session, "target@cardhub.test")
    target_uid = target.identity.current_user.uid

    await admin.api.delete_user(target_uid)
    assert await get_profile(app, target_uid) is None

    await admin.api.set_role(target_uid, "employee")
    profile = await get_profile(app, target_uid)
    assert profile.role == "employee"
    assert profile.email == "target@cardhub.test"
