"""
cardhub.api.routers.activity

Activity log: UI-triggered writes and the admin activity feed.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.api.deps import audit_dep, db_session, settings_dep
from cardhub.auth.deps import get_caller, require_tier
from cardhub.auth.models import AccessTier, Caller
from cardhub.db.repositories.activity_logs import ActivityLogRepo
from cardhub.services.activity import log_activity
from cardhub.services.audit_logger import AuditLogger
from cardhub.settings import Settings

router = APIRouter(prefix="/v1/activity", tags=["activity"])


class LogActivityRequest(BaseModel):
    action: str | None = None
    details: str | None = None


class LogActivityResponse(BaseModel):
    success: bool


@router.post("", response_model=LogActivityResponse)
async def post_activity(
    body: LogActivityRequest,
    caller: Caller = Depends(get_caller),
    session: AsyncSession = Depends(db_session),
    audit: AuditLogger = Depends(audit_dep),
) -> LogActivityResponse:
    result = await log_activity(
        session=session,
        audit=audit,
        caller=caller,
        action=body.action,
        details=body.details,
    )
    return LogActivityResponse(success=result.success)


@router.get("", dependencies=[Depends(require_tier(AccessTier.admin))])
async def list_activity(
    action: str | None = Query(default=None, max_length=64),
    user_id: str | None = Query(default=None, max_length=128),
    limit: int | None = Query(default=None, ge=1, le=500),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> list[dict[str, Any]]:
    # Newest first; "all" is the feed's no-filter value.
    entries = await ActivityLogRepo(session).query(
        action=None if action in (None, "", "all") else action,
        user_id=user_id or None,
        limit=limit or settings.activity_page_limit,
    )
    return [e.to_document() for e in entries]
