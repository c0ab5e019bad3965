"""Member table and API schemas."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import ClassVar
from uuid import UUID

import sqlalchemy as sa
from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import Field, SQLModel

from tenure.models.base import TimestampedTable, enum_type

MAX_NAME_LENGTH = 100


class MemberStatus(str, enum.Enum):
    """Lifecycle of a membership.

    - ACTIVE: paying member, ranked in the queue
    - DEFAULTED: missed a billing cycle past the grace period
    - WON: selected for a payout
    - REMOVED: membership ended after the post-payout retention period
    """

    ACTIVE = "active"
    DEFAULTED = "defaulted"
    WON = "won"
    REMOVED = "removed"


class KycStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class MemberBase(SQLModel):
    email: EmailStr = Field(
        sa_column=sa.Column(sa.String(320), nullable=False, unique=True),
        description="Member email address",
    )
    first_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    middle_name: str | None = Field(default=None, max_length=MAX_NAME_LENGTH)
    last_name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)


class Member(TimestampedTable, MemberBase, table=True):
    __tablename__ = "member"

    status: MemberStatus = Field(
        default=MemberStatus.ACTIVE,
        sa_column=sa.Column(
            enum_type(MemberStatus, "member_status"),
            nullable=False,
            server_default="active",
        ),
    )
    kyc_status: KycStatus = Field(
        default=KycStatus.PENDING,
        sa_column=sa.Column(
            enum_type(KycStatus, "kyc_status"),
            nullable=False,
            server_default="pending",
        ),
    )
    has_tax_form: bool = Field(
        default=False,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    __table_args__ = (sa.Index("ix_member_status", "status"),)

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(part for part in parts if part)


class MemberCreate(MemberBase):
    kyc_status: KycStatus = KycStatus.PENDING
    has_tax_form: bool = False

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Name cannot be empty or whitespace"
            raise ValueError(msg)
        return value


class MemberUpdate(SQLModel):
    """Schema for partial member updates.

    Status changes made here bypass enforcement; they exist for manual
    corrections by an operator.
    """

    first_name: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    middle_name: str | None = Field(default=None, max_length=MAX_NAME_LENGTH)
    last_name: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    status: MemberStatus | None = None
    kyc_status: KycStatus | None = None
    has_tax_form: bool | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, value: str | None) -> str:
        if value is None:
            msg = "Name cannot be null"
            raise ValueError(msg)
        value = value.strip()
        if not value:
            msg = "Name cannot be empty or whitespace"
            raise ValueError(msg)
        return value

    @field_validator("status", "kyc_status", "has_tax_form")
    @classmethod
    def reject_null(cls, value: object) -> object:
        # Omit a field to leave it unchanged; these columns cannot be cleared.
        if value is None:
            msg = "Field cannot be null"
            raise ValueError(msg)
        return value


class MemberRead(MemberBase):
    id: UUID
    status: MemberStatus
    kyc_status: KycStatus
    has_tax_form: bool
    created_at: datetime
    updated_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)  # type: ignore[assignment]
