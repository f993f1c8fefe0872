"""
cardhub.db.repositories.activity_logs

Repository for `ActivityLogEntry` records.

Responsibilities:
- Append activity entries (single insert, no read-modify-write).
- Query the trail by action / actor, newest first.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.db.models import ActivityLogEntry


class ActivityLogRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        *,
        action: str,
        user_id: str | None,
        user_email: str | None,
        details: str | None,
        timestamp: datetime,
        ip_address: str | None,
    ) -> ActivityLogEntry:
        # Append-only: no update/delete path exists in normal operation.
        entry = ActivityLogEntry(
            action=action,
            user_id=user_id,
            user_email=user_email,
            details=details,
            timestamp=timestamp,
            ip_address=ip_address,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def query(
        self,
        *,
        action: str | None = None,
        user_id: str | None = None,
        limit: int = 100,
    ) -> list[ActivityLogEntry]:
        stmt = select(ActivityLogEntry)
        if action is not None:
            stmt = stmt.where(ActivityLogEntry.action == action)
        if user_id is not None:
            stmt = stmt.where(ActivityLogEntry.user_id == user_id)
        stmt = stmt.order_by(desc(ActivityLogEntry.timestamp)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# `(action, timestamp)` is indexed to serve the filtered activity feed.
