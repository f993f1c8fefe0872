"""
cardhub.clients.api

Client for the CardHub API, authenticated with the identity client's current token.

Responsibilities:
- Profile reads for the role resolver.
- Privileged calls: role changes and admin user management.
- Activity logging and activity-feed reads.
"""

from __future__ import annotations

from typing import Any

import httpx

from cardhub.clients import raise_for_error
from cardhub.clients.identity import IdentityClient
from cardhub.session.resolver import ProfileSnapshot


class CardhubApiClient:
    def __init__(self, *, http: httpx.AsyncClient, identity: IdentityClient) -> None:
        self._http = http
        self._identity = identity

    async def get_profile_document(self, uid: str) -> dict[str, Any] | None:
        r = await self._http.get(f"/v1/profiles/{uid}", headers=self._identity.auth_headers())
        if r.status_code == 404:
            return None
        raise_for_error(r)
        return r.json()

    async def get_profile(self, uid: str) -> ProfileSnapshot | None:
        doc = await self.get_profile_document(uid)
        return ProfileSnapshot.from_document(doc) if doc is not None else None

    async def set_role(self, uid: str, role: str) -> dict[str, Any]:
        r = await self._http.post(
            "/v1/claims/set-role",
            headers=self._identity.auth_headers(),
            json={"uid": uid, "role": role},
        )
        raise_for_error(r)
        return r.json()

    async def log_activity(self, action: str, details: str | None = None) -> dict[str, Any]:
        r = await self._http.post(
            "/v1/activity",
            headers=self._identity.auth_headers(),
            json={"action": action, "details": details},
        )
        raise_for_error(r)
        return r.json()

    async def list_activity(
        self,
        *,
        action: str | None = None,
        user_id: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params = {
            k: v for k, v in {"action": action, "user_id": user_id, "limit": limit}.items() if v
        }
        r = await self._http.get(
            "/v1/activity", headers=self._identity.auth_headers(), params=params
        )
        raise_for_error(r)
        return r.json()

    async def list_users(self, *, role: str | None = None) -> list[dict[str, Any]]:
        params = {"role": role} if role else {}
        r = await self._http.get("/v1/users", headers=self._identity.auth_headers(), params=params)
        raise_for_error(r)
        return r.json()

    async def add_user(
        self,
        *,
        email: str,
        password: str,
        display_name: str | None = None,
        role: str | None = None,
        contact: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        r = await self._http.post(
            "/v1/users",
            headers=self._identity.auth_headers(),
            json={
                "email": email,
                "password": password,
                "display_name": display_name,
                "role": role,
                "contact": contact or {},
            },
        )
        raise_for_error(r)
        return r.json()

    async def update_user(
        self,
        uid: str,
        *,
        blocked: bool | None = None,
        display_name: str | None = None,
        contact: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        body = {
            k: v
            for k, v in {
                "blocked": blocked,
                "display_name": display_name,
                "contact": contact,
            }.items()
            if v is not None
        }
        r = await self._http.patch(
            f"/v1/users/{uid}", headers=self._identity.auth_headers(), json=body
        )
        raise_for_error(r)
        return r.json()

    async def delete_user(self, uid: str) -> dict[str, Any]:
        r = await self._http.delete(f"/v1/users/{uid}", headers=self._identity.auth_headers())
        raise_for_error(r)
        return r.json()


# --- Module Notes -----------------------------------------------------------
# `get_profile` satisfies `session.resolver.ProfileSource`; a missing profile is None, every
# other failure raises and is degraded by the resolver.
