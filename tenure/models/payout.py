"""Payout table and API schemas."""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID

import sqlalchemy as sa
from pydantic import ConfigDict
from sqlmodel import Field, SQLModel

from tenure.models.base import JSON_VARIANT, TimestampedTable, enum_type


class PayoutStatus(str, enum.Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ApprovalDecision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class Payout(TimestampedTable, table=True):
    __tablename__ = "payout"

    member_id: UUID = Field(
        sa_column=sa.Column(
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("member.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    queue_position: int = Field(ge=1)
    amount: Decimal = Field(sa_column=sa.Column(sa.Numeric(12, 2), nullable=False))
    currency: str = Field(default="USD", max_length=3)
    status: PayoutStatus = Field(
        default=PayoutStatus.PENDING_APPROVAL,
        sa_column=sa.Column(
            enum_type(PayoutStatus, "payout_status"),
            nullable=False,
            server_default="pending_approval",
        ),
    )
    eligibility_snapshot: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=sa.Column(JSON_VARIANT, nullable=False),
    )
    approvals: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=sa.Column(JSON_VARIANT, nullable=False),
    )
    initiated_by: str | None = Field(default=None, max_length=255)
    retention_fee: Decimal | None = Field(
        default=None, sa_column=sa.Column(sa.Numeric(12, 2), nullable=True)
    )
    tax_withholding: Decimal | None = Field(
        default=None, sa_column=sa.Column(sa.Numeric(12, 2), nullable=True)
    )
    net_amount: Decimal | None = Field(
        default=None, sa_column=sa.Column(sa.Numeric(12, 2), nullable=True)
    )
    completed_at: datetime | None = Field(
        default=None, sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
    membership_removal_date: datetime | None = Field(
        default=None, sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
    scheduled_date: date | None = Field(
        default=None, sa_column=sa.Column(sa.Date(), nullable=True)
    )
    sent_at: datetime | None = Field(
        default=None, sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
    payment_reference: str | None = Field(default=None, max_length=255)
    failed_at: datetime | None = Field(
        default=None, sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
    failure_reason: str | None = None
    notes: str | None = None

    __table_args__ = (
        sa.Index("ix_payout_member_id", "member_id"),
        sa.Index("ix_payout_status", "status"),
    )


class PayoutCreate(SQLModel):
    """Request body for starting a payout round."""

    initiated_by: str = Field(min_length=1, max_length=255)
    notes: str | None = None


class ApprovalCreate(SQLModel):
    admin_id: str = Field(min_length=1, max_length=255)
    decision: ApprovalDecision
    reason: str | None = None


class PayoutSchedule(SQLModel):
    admin_id: str = Field(min_length=1, max_length=255)
    scheduled_date: date


class PaymentSent(SQLModel):
    """The finance team has sent the money; the payout is now processing."""

    admin_id: str = Field(min_length=1, max_length=255)
    payment_reference: str | None = Field(default=None, max_length=255)


class PaymentFailure(SQLModel):
    admin_id: str = Field(min_length=1, max_length=255)
    reason: str = Field(min_length=1)


class PayoutRead(SQLModel):
    id: UUID
    member_id: UUID
    queue_position: int
    amount: Decimal
    currency: str
    status: PayoutStatus
    eligibility_snapshot: dict[str, Any]
    approvals: list[dict[str, Any]]
    initiated_by: str | None
    retention_fee: Decimal | None
    tax_withholding: Decimal | None
    net_amount: Decimal | None
    completed_at: datetime | None
    membership_removal_date: datetime | None
    scheduled_date: date | None
    sent_at: datetime | None
    payment_reference: str | None
    failed_at: datetime | None
    failure_reason: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)  # type: ignore[assignment]
