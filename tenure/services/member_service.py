"""Member data access helpers for services and endpoints."""

from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from tenure.core.config import settings
from tenure.core.exceptions import ConflictError
from tenure.core.metrics import members_created_total
from tenure.models.member import Member, MemberCreate, MemberStatus, MemberUpdate


async def get_member(session: AsyncSession, member_id: UUID) -> Member | None:
    result = await session.execute(select(Member).where(col(Member.id) == member_id))
    return result.scalar_one_or_none()


async def get_member_by_email(session: AsyncSession, email: str) -> Member | None:
    result = await session.execute(
        select(Member).where(col(Member.email) == email.lower())
    )
    return result.scalar_one_or_none()


def list_members_query(status: MemberStatus | None = None) -> Select[tuple[Member]]:
    query = select(Member).order_by(col(Member.created_at), col(Member.id))
    if status is not None:
        query = query.where(col(Member.status) == status)
    return query


async def create_member(session: AsyncSession, payload: MemberCreate) -> Member:
    """Create a member in ``active`` status.

    Emails are stored lower-cased and must be unique.
    """
    email = str(payload.email).lower()
    if await get_member_by_email(session, email) is not None:
        msg = f"A member with email {email} already exists"
        raise ConflictError(msg)

    member = Member(**payload.model_dump(exclude={"email"}), email=email)
    session.add(member)
    await session.commit()
    await session.refresh(member)

    members_created_total.labels(environment=settings.environment).inc()
    return member


async def update_member(
    session: AsyncSession, member: Member, payload: MemberUpdate
) -> Member:
    updates = payload.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(member, field, value)
    session.add(member)
    await session.commit()
    await session.refresh(member)
    return member
