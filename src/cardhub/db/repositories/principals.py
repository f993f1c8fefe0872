"""
cardhub.db.repositories.principals

Repository for identity-store `PrincipalAccount` records.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.db.models import PrincipalAccount


class PrincipalRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        display_name: str | None = None,
        custom_claims: dict[str, Any] | None = None,
    ) -> PrincipalAccount:
        account = PrincipalAccount(
            email=email.lower(),
            password_hash=password_hash,
            display_name=display_name,
            custom_claims=dict(custom_claims or {}),
        )
        self._session.add(account)
        await self._session.flush()
        return account

    async def get(self, uid: str) -> PrincipalAccount | None:
        return await self._session.get(PrincipalAccount, uid)

    async def get_by_email(self, email: str) -> PrincipalAccount | None:
        stmt = select(PrincipalAccount).where(func.lower(PrincipalAccount.email) == email.lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> PrincipalAccount | None:
        # Replaces the whole claims object; reassign so the JSON column is marked dirty.
        account = await self._session.get(PrincipalAccount, uid)
        if account is None:
            return None
        account.custom_claims = dict(claims)
        await self._session.flush()
        return account

    async def set_password_hash(self, uid: str, password_hash: str) -> PrincipalAccount | None:
        account = await self._session.get(PrincipalAccount, uid)
        if account is None:
            return None
        account.password_hash = password_hash
        await self._session.flush()
        return account
