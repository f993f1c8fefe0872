"""
cardhub.services.audit_logger

Append-only activity log writer.

Responsibilities:
- Validate and write exactly one `ActivityLogEntry` per call, in its own transaction.
- Assign the entry timestamp on the server, strictly increasing per logger instance.
- Run writes as fire-and-forget background tasks whose failures only reach the
  operational alert channel.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardhub.db.models import utcnow
from cardhub.db.repositories.activity_logs import ActivityLogRepo
from cardhub.errors import InvalidArgument
from cardhub.observability.logging import get_alert_logger, get_logger

log = get_logger(__name__)
alerts = get_alert_logger()


class Action(enum.StrEnum):
    # Known actions; the column accepts any non-empty string so the set can grow.
    login = "login"
    logout = "logout"
    create = "create"
    update = "update"
    delete = "delete"
    card_generated = "card_generated"


@dataclass(frozen=True, slots=True)
class RecordResult:
    success: bool
    entry_id: str | None = None


class AuditLogger:
    """
    One instance per process; safe to share between concurrent requests.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._last_timestamp: datetime | None = None
        self._tasks: set[asyncio.Task[RecordResult]] = set()

    def _next_timestamp(self) -> datetime:
        now = utcnow()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    async def record(
        self,
        action: str | None,
        actor_id: str | None = None,
        actor_email: str | None = None,
        details: str | None = None,
        origin_address: str | None = None,
    ) -> RecordResult:
        """
        Write one entry. Only `action` is mandatory; everything else is stored as given.

        Store failures are reported on the alert channel and returned as
        `success=False`, never raised.
        """

        _validate_action(action)
        timestamp = self._next_timestamp()
        try:
            async with self._session_factory() as session:
                entry = await ActivityLogRepo(session).append(
                    action=str(action),
                    user_id=actor_id,
                    user_email=actor_email,
                    details=details,
                    timestamp=timestamp,
                    ip_address=origin_address,
                )
                await session.commit()
        except Exception as e:
            alerts.error(
                "audit_write_failed",
                action=action,
                actor_id=actor_id,
                details=details,
                error=repr(e),
                exc_info=True,
            )
            return RecordResult(success=False)

        log.info("activity_recorded", action=action, actor_id=actor_id, entry_id=entry.id)
        return RecordResult(success=True, entry_id=entry.id)

    def spawn(
        self,
        action: str,
        actor_id: str | None = None,
        actor_email: str | None = None,
        details: str | None = None,
        origin_address: str | None = None,
    ) -> asyncio.Task[RecordResult]:
        """
        Schedule `record` without awaiting it. Must be called after the primary
        operation has committed.
        """

        _validate_action(action)
        task = asyncio.get_running_loop().create_task(
            self.record(action, actor_id, actor_email, details, origin_address),
            name=f"audit:{action}",
        )
        # Keep a strong reference until done; the loop only holds weak ones.
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[RecordResult]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            alerts.warning("audit_write_cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            alerts.error("audit_write_failed", task=task.get_name(), error=repr(exc))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """
        Wait for every scheduled write (shutdown and tests).
        """

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _validate_action(action: str | None) -> None:
    if action is None or not str(action).strip():
        raise InvalidArgument("action is required", field="action")


# --- Module Notes -----------------------------------------------------------
# Ordering across entries is by the timestamp assigned here. A write that fails after the
# insert reached the store may be retried by the caller and duplicate the entry; that is
# preferred over losing it.
