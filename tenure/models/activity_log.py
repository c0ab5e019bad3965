"""Audit trail rows: who changed which record, and which rule decisions ran."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, ClassVar
from uuid import UUID

import sqlalchemy as sa
from pydantic import ConfigDict
from sqlmodel import Field, SQLModel

from tenure.models.base import JSON_VARIANT, TimestampedTable


class ActivityAction(StrEnum):
    # record changes
    CREATE = "create"
    UPDATE = "update"
    # rule decisions
    ENFORCE = "enforce"
    DEFAULT = "default"
    REMOVE = "remove"
    # payout workflow
    APPROVE = "approve"
    REJECT = "reject"
    SCHEDULE = "schedule"
    SEND = "send"
    FAIL = "fail"
    COMPLETE = "complete"


class ActivityLogBase(SQLModel):
    # Stored as plain text so new actions need no migration.
    action: ActivityAction = Field(sa_column=sa.Column(sa.String(), nullable=False))
    resource_type: str = Field(description="member, subscription, payment, payout or business_rules")
    resource_id: UUID | None = None
    details: dict[str, Any] = Field(
        default_factory=dict, sa_column=sa.Column(JSON_VARIANT, nullable=False)
    )


class ActivityLog(TimestampedTable, ActivityLogBase, table=True):
    __tablename__ = "activity_log"
    __table_args__ = (sa.Index("ix_activity_log_resource", "resource_type", "resource_id"),)


class ActivityLogRead(ActivityLogBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)  # type: ignore[assignment]
