from datetime import UTC, datetime, timedelta
from http import HTTPStatus
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tenure.models.member import Member
from tenure.models.subscription import SubscriptionStatus
from tenure.tests.helpers.factories import make_member, make_paying_member

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
async def members(session: AsyncSession) -> dict[str, Member]:
    """Four ranked members: one lapsed, two eligible, one with a past-due subscription."""
    return {
        "lapsed": await make_paying_member(
            session,
            joined_at=datetime(2024, 3, 1, tzinfo=UTC),
            paid_until=datetime(2024, 12, 1, tzinfo=UTC),
            first_name="Linus",
            email="linus@example.com",
        ),
        "alice": await make_paying_member(
            session,
            joined_at=datetime(2024, 5, 1, tzinfo=UTC),
            paid_until=NOW - timedelta(days=5),
            first_name="Alice",
            email="alice@example.com",
        ),
        "bob": await make_paying_member(
            session,
            joined_at=datetime(2024, 6, 1, tzinfo=UTC),
            paid_until=NOW,
            first_name="Bob",
            email="bob@example.com",
        ),
        "carol": await make_paying_member(
            session,
            joined_at=datetime(2024, 7, 1, tzinfo=UTC),
            paid_until=NOW,
            subscription_status=SubscriptionStatus.PAST_DUE,
            first_name="Carol",
            email="carol@example.com",
        ),
    }


@pytest.mark.asyncio
async def test_queue_order_and_eligibility(client: AsyncClient, members: dict[str, Member]) -> None:
    response = await client.get("/queue")
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["total"] == 4
    assert [item["first_name"] for item in body["items"]] == ["Linus", "Alice", "Bob", "Carol"]
    assert [item["queue_position"] for item in body["items"]] == [1, 2, 3, 4]
    assert [item["is_eligible"] for item in body["items"]] == [False, True, True, False]
    assert body["items"][0]["payment_status"] == "defaulted"
    assert body["items"][3]["subscription_status"] == "past_due"


@pytest.mark.asyncio
async def test_queue_excludes_members_without_payments(
    client: AsyncClient, session: AsyncSession, members: dict[str, Member]
) -> None:
    await make_member(session, email="new@example.com")

    response = await client.get("/queue")
    assert response.json()["total"] == 4


@pytest.mark.asyncio
async def test_queue_search_window_and_pagination(
    client: AsyncClient, members: dict[str, Member]
) -> None:
    search = await client.get("/queue", params={"search": "BOB"})
    assert [item["first_name"] for item in search.json()["items"]] == ["Bob"]
    assert search.json()["search"] == "BOB"

    windowed = await client.get("/queue", params={"current_position": 1})
    assert [item["queue_position"] for item in windowed.json()["items"]] == [1, 2, 3]
    assert windowed.json()["current_position"] == 1

    page = await client.get("/queue", params={"limit": 2, "offset": 1})
    assert [item["queue_position"] for item in page.json()["items"]] == [2, 3]
    assert page.json()["total"] == 4

    invalid = await client.get("/queue", params={"limit": 0})
    assert invalid.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_queue_statistics(client: AsyncClient, members: dict[str, Member]) -> None:
    response = await client.get("/queue/statistics")
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["total_members"] == 4
    assert body["eligible_members"] == 2
    assert body["potential_winners"] == 2
    assert body["received_payouts"] == 0
    assert body["oldest_tenure_start"].startswith("2024-03-01")
    assert body["newest_tenure_start"].startswith("2024-07-01")


@pytest.mark.asyncio
async def test_member_position(client: AsyncClient, members: dict[str, Member]) -> None:
    response = await client.get(f"/queue/{members['bob'].id}")
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["in_queue"] is True
    assert body["entry"]["queue_position"] == 3
    assert body["total_members"] == 4


@pytest.mark.asyncio
async def test_member_position_outside_queue(
    client: AsyncClient, session: AsyncSession, members: dict[str, Member]
) -> None:
    newcomer = await make_member(session, email="newcomer@example.com")

    response = await client.get(f"/queue/{newcomer.id}")
    assert response.status_code == HTTPStatus.OK
    assert response.json()["in_queue"] is False
    assert response.json()["entry"] is None

    missing = await client.get(f"/queue/{uuid4()}")
    assert missing.status_code == HTTPStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_empty_queue(client: AsyncClient) -> None:
    response = await client.get("/queue")
    assert response.status_code == HTTPStatus.OK
    assert response.json()["items"] == []
    assert response.json()["total"] == 0
