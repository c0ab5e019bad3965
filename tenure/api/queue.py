from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from tenure.api.deps import NowDep, RulesDep
from tenure.core.pagination import LimitOffsetDep
from tenure.db.session import SessionDep
from tenure.engine.queue import (
    QueueStatistics,
    find_entry,
    paginate,
    queue_statistics,
    search_queue,
    window,
)
from tenure.models.shared import MemberPosition, QueuePage
from tenure.services.member_service import get_member
from tenure.services.queue_service import build_queue, count_received_payouts

router = APIRouter(prefix="/queue", tags=["queue"])


@router.get("", response_model=QueuePage)
async def get_queue_endpoint(
    session: SessionDep,
    params: LimitOffsetDep,
    now: NowDep,
    rules: RulesDep,
    search: str | None = Query(default=None, max_length=200),
    current_position: int | None = Query(default=None, ge=1),
) -> QueuePage:
    """Ranked queue, optionally narrowed to a search term or a position window."""
    entries = search_queue(await build_queue(session, now, rules), search)
    if current_position is not None:
        entries = window(entries, current_position)
    return QueuePage(
        items=paginate(entries, params.limit, params.offset),
        total=len(entries),
        limit=params.limit,
        offset=params.offset,
        search=search,
        current_position=current_position,
    )


@router.get("/statistics", response_model=QueueStatistics)
async def get_queue_statistics_endpoint(
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> QueueStatistics:
    entries = await build_queue(session, now, rules)
    received = await count_received_payouts(session)
    return queue_statistics(entries, rules, received_payouts=received)


@router.get("/{member_id}", response_model=MemberPosition)
async def get_member_position_endpoint(
    member_id: UUID,
    session: SessionDep,
    now: NowDep,
    rules: RulesDep,
) -> MemberPosition:
    member = await get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    entries = await build_queue(session, now, rules)
    entry = find_entry(entries, member_id)
    return MemberPosition(
        member_id=member_id,
        in_queue=entry is not None,
        entry=entry,
        total_members=len(entries),
    )
