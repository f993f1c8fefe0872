"""
cardhub.db.models

Persistence schema for the authorization and audit core.

Responsibilities:
- Define ORM models:
  - PrincipalAccount: identity-store record (credentials + custom claims)
  - Profile: per-principal business record carrying the fallback role and block flag
  - ActivityLogEntry: append-only activity trail
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cardhub.db.base import Base


def utcnow() -> datetime:
    # Naive UTC timestamps, consistent across SQLite and Postgres.
    return datetime.now(UTC).replace(tzinfo=None)


def new_uid() -> str:
    return uuid.uuid4().hex


class PrincipalAccount(Base):
    __tablename__ = "principals"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_uid)
    # Stored lower-cased; uniqueness is case-insensitive.
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(256), nullable=True)

    # Custom claims embedded at top level of every token issued after they are set.
    custom_claims: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Profile(Base):
    __tablename__ = "profiles"

    # Always equal to the principal id (1:1).
    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    role: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(256), nullable=True)

    # Free-form contact fields (phone, designation, department, ...).
    contact: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "blocked": self.blocked,
            "email": self.email,
            "displayName": self.display_name,
            "contact": dict(self.contact or {}),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class ActivityLogEntry(Base):
    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # login | logout | create | update | delete | card_generated | ...
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    # Captured at write time and never re-resolved.
    user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Assigned by the audit logger, never by the client.
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (Index("ix_activity_logs_action_timestamp", "action", "timestamp"),)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "userId": self.user_id,
            "userEmail": self.user_email,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "ipAddress": self.ip_address,
        }


# --- Module Notes -----------------------------------------------------------
# Document field names (`userId`, `ipAddress`, ...) are the wire contract; column names
# follow Python conventions.
