"""Payment table and API schemas."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID

import sqlalchemy as sa
from pydantic import ConfigDict
from sqlmodel import Field, SQLModel

from tenure.models.base import TimestampedTable, enum_type, utc_now


class PaymentType(str, enum.Enum):
    JOINING_FEE = "joining_fee"
    MONTHLY_FEE = "monthly_fee"
    RETENTION_FEE = "retention_fee"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentBase(SQLModel):
    member_id: UUID = Field(
        sa_column=sa.Column(
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("member.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    subscription_id: UUID | None = Field(
        default=None,
        sa_column=sa.Column(
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("subscription.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    payment_type: PaymentType = Field(
        sa_column=sa.Column(
            enum_type(PaymentType, "payment_type"),
            nullable=False,
        )
    )
    status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        sa_column=sa.Column(
            enum_type(PaymentStatus, "payment_status"),
            nullable=False,
            server_default="pending",
        ),
    )
    amount: Decimal = Field(
        ge=0,
        sa_column=sa.Column(sa.Numeric(12, 2), nullable=False),
    )
    currency: str = Field(default="USD", min_length=3, max_length=3)
    payment_date: datetime = Field(
        default_factory=utc_now,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=False),
    )
    provider_payment_id: str | None = Field(default=None, max_length=255)


class Payment(TimestampedTable, PaymentBase, table=True):
    __tablename__ = "payment"

    __table_args__ = (
        sa.Index("ix_payment_member_id", "member_id"),
        sa.Index("ix_payment_member_date", "member_id", "payment_date"),
    )


class PaymentCreate(PaymentBase):
    pass


class PaymentUpdate(SQLModel):
    status: PaymentStatus


class PaymentRead(PaymentBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)  # type: ignore[assignment]
