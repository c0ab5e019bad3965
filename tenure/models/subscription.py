"""Subscription table and API schemas.

Rows mirror the billing provider's subscription lifecycle; the provider
itself is not called from here.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import ClassVar
from uuid import UUID

import sqlalchemy as sa
from pydantic import ConfigDict, field_validator
from sqlmodel import Field, SQLModel

from tenure.models.base import TimestampedTable, enum_type


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"


# Statuses that keep a member eligible for a payout.
GOOD_STANDING_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


class SubscriptionBase(SQLModel):
    member_id: UUID = Field(
        sa_column=sa.Column(
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("member.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    provider_subscription_id: str | None = Field(default=None, max_length=255)
    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.INCOMPLETE,
        sa_column=sa.Column(
            enum_type(SubscriptionStatus, "subscription_status"),
            nullable=False,
            server_default="incomplete",
        ),
    )
    started_at: datetime | None = Field(
        default=None, sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
    canceled_at: datetime | None = Field(
        default=None, sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )


class Subscription(TimestampedTable, SubscriptionBase, table=True):
    __tablename__ = "subscription"

    __table_args__ = (sa.Index("ix_subscription_member_id", "member_id"),)


class SubscriptionCreate(SubscriptionBase):
    pass


class SubscriptionUpdate(SQLModel):
    status: SubscriptionStatus | None = None
    provider_subscription_id: str | None = None
    canceled_at: datetime | None = None

    @field_validator("status")
    @classmethod
    def reject_null_status(cls, value: SubscriptionStatus | None) -> SubscriptionStatus:
        if value is None:
            msg = "Subscription status cannot be null"
            raise ValueError(msg)
        return value


class SubscriptionRead(SubscriptionBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)  # type: ignore[assignment]
