"""
cardhub.api.routers.health

Liveness and readiness probes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from cardhub.api.deps import audit_dep, db_session
from cardhub.services.audit_logger import AuditLogger

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session: AsyncSession = Depends(db_session),
    audit: AuditLogger = Depends(audit_dep),
) -> dict[str, str | int]:
    # Ready once the store answers; queued audit writes are reported, not gated on.
    await session.execute(text("SELECT 1"))
    return {"status": "ready", "pending_audit_writes": audit.pending}
