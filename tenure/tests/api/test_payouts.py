from datetime import UTC, datetime, timedelta
from decimal import Decimal
from http import HTTPStatus
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tenure.api.deps import get_now
from tenure.main import app
from tenure.models.member import KycStatus, Member
from tenure.tests.helpers.factories import make_paying_member

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


async def paying_member(session: AsyncSession, joined: datetime, **fields: object) -> Member:
    return await make_paying_member(session, joined_at=joined, paid_until=NOW, **fields)


@pytest.fixture
async def members(session: AsyncSession) -> dict[str, Member]:
    return {
        "alice": await paying_member(session, datetime(2024, 5, 1, tzinfo=UTC)),
        "bob": await paying_member(session, datetime(2024, 6, 1, tzinfo=UTC), has_tax_form=False),
        "carol": await paying_member(session, datetime(2024, 7, 1, tzinfo=UTC)),
    }


async def open_round(client: AsyncClient) -> dict:
    response = await client.post(
        "/payouts", json={"initiated_by": "ops@example.com", "notes": "June round"}
    )
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()


async def approve(client: AsyncClient, payout_id: str, *admins: str) -> dict:
    body: dict = {}
    for admin in admins:
        response = await client.post(
            f"/payouts/{payout_id}/approvals",
            json={"admin_id": admin, "decision": "approved"},
        )
        assert response.status_code == HTTPStatus.OK, response.text
        body = response.json()
    return body


class TestCreatePayouts:
    @pytest.mark.asyncio
    async def test_top_of_queue_wins(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        body = await open_round(client)

        assert body["payout_conditions"]["payout_ready"] is True
        assert body["skipped"] == []
        created = body["created"]
        assert [p["member_id"] for p in created] == [
            str(members["alice"].id),
            str(members["bob"].id),
        ]
        assert [p["queue_position"] for p in created] == [1, 2]
        assert all(p["status"] == "pending_approval" for p in created)
        assert Decimal(created[0]["amount"]) == Decimal("500")
        assert created[0]["initiated_by"] == "ops@example.com"
        assert created[0]["eligibility_snapshot"]["is_eligible"] is True
        assert "validated_at" in created[0]["eligibility_snapshot"]

        alice = await client.get(f"/members/{members['alice'].id}")
        assert alice.json()["status"] == "won"

        queue = await client.get("/queue")
        assert [item["member_id"] for item in queue.json()["items"]] == [str(members["carol"].id)]

    @pytest.mark.asyncio
    async def test_winner_failing_validation_is_skipped(
        self, client: AsyncClient, session: AsyncSession, members: dict[str, Member]
    ) -> None:
        members["alice"].kyc_status = KycStatus.PENDING
        session.add(members["alice"])
        await session.commit()

        body = await open_round(client)

        assert [p["member_id"] for p in body["created"]] == [str(members["bob"].id)]
        assert len(body["skipped"]) == 1
        assert body["skipped"][0]["member_id"] == str(members["alice"].id)
        assert "KYC" in body["skipped"][0]["errors"][0]

        alice = await client.get(f"/members/{members['alice'].id}")
        assert alice.json()["status"] == "active"

    @pytest.mark.asyncio
    async def test_conditions_not_met(self, client: AsyncClient) -> None:
        response = await client.post("/payouts", json={"initiated_by": "ops@example.com"})

        assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
        body = response.json()
        assert body["error_code"] == "RULE_VIOLATION"
        assert any("short" in reason for reason in body["details"])

    @pytest.mark.asyncio
    async def test_no_one_left_to_pay(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        await open_round(client)
        await open_round(client)

        response = await client.post("/payouts", json={"initiated_by": "ops@example.com"})
        assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
        assert response.json()["message"] == "No eligible members for a payout"

    @pytest.mark.asyncio
    async def test_initiator_required(self, client: AsyncClient) -> None:
        response = await client.post("/payouts", json={})
        assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


class TestApprovalWorkflow:
    @pytest.mark.asyncio
    async def test_two_approvals_then_complete(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = (await open_round(client))["created"][0]["id"]

        first = await approve(client, payout_id, "admin-1")
        assert first["status"] == "pending_approval"
        assert len(first["approvals"]) == 1

        approved = await approve(client, payout_id, "admin-2")
        assert approved["status"] == "approved"

        completed = await client.post(f"/payouts/{payout_id}/complete")
        assert completed.status_code == HTTPStatus.OK
        body = completed.json()
        assert body["status"] == "completed"
        assert Decimal(body["retention_fee"]) == Decimal("50")
        assert Decimal(body["tax_withholding"]) == Decimal("0")
        assert Decimal(body["net_amount"]) == Decimal("450")
        assert body["completed_at"].startswith("2025-06-15")
        assert body["membership_removal_date"].startswith("2026-06-15")

        again = await client.post(f"/payouts/{payout_id}/complete")
        assert again.status_code == HTTPStatus.CONFLICT

    @pytest.mark.asyncio
    async def test_withholding_without_tax_form(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = (await open_round(client))["created"][1]["id"]
        await approve(client, payout_id, "admin-1", "admin-2")

        body = (await client.post(f"/payouts/{payout_id}/complete")).json()

        assert Decimal(body["tax_withholding"]) == Decimal("120")
        assert Decimal(body["net_amount"]) == Decimal("330")

    @pytest.mark.asyncio
    async def test_same_admin_cannot_approve_twice(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = (await open_round(client))["created"][0]["id"]
        await approve(client, payout_id, "admin-1")

        response = await client.post(
            f"/payouts/{payout_id}/approvals",
            json={"admin_id": "admin-1", "decision": "approved"},
        )
        assert response.status_code == HTTPStatus.CONFLICT

    @pytest.mark.asyncio
    async def test_completion_requires_approval(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = (await open_round(client))["created"][0]["id"]

        response = await client.post(f"/payouts/{payout_id}/complete")
        assert response.status_code == HTTPStatus.CONFLICT

    @pytest.mark.asyncio
    async def test_rejection_cancels_and_requeues(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = (await open_round(client))["created"][0]["id"]

        response = await client.post(
            f"/payouts/{payout_id}/approvals",
            json={"admin_id": "admin-1", "decision": "rejected", "reason": "Identity mismatch"},
        )
        assert response.status_code == HTTPStatus.OK
        assert response.json()["status"] == "cancelled"

        alice = await client.get(f"/members/{members['alice'].id}")
        assert alice.json()["status"] == "active"

        late = await client.post(
            f"/payouts/{payout_id}/approvals",
            json={"admin_id": "admin-2", "decision": "approved"},
        )
        assert late.status_code == HTTPStatus.CONFLICT

    @pytest.mark.asyncio
    async def test_unknown_payout(self, client: AsyncClient) -> None:
        missing = uuid4()

        read = await client.get(f"/payouts/{missing}")
        assert read.status_code == HTTPStatus.NOT_FOUND
        assert read.json()["error_code"] == "NOT_FOUND"
        approval = await client.post(
            f"/payouts/{missing}/approvals",
            json={"admin_id": "admin-1", "decision": "approved"},
        )
        assert approval.status_code == HTTPStatus.NOT_FOUND
        assert approval.json()["error_code"] == "NOT_FOUND"
        complete = await client.post(f"/payouts/{missing}/complete")
        assert complete.status_code == HTTPStatus.NOT_FOUND


async def approved_payout(client: AsyncClient) -> str:
    payout_id = (await open_round(client))["created"][0]["id"]
    await approve(client, payout_id, "admin-1", "admin-2")
    return payout_id


class TestPaymentProcessing:
    @pytest.mark.asyncio
    async def test_schedule_send_complete(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = await approved_payout(client)

        scheduled = await client.post(
            f"/payouts/{payout_id}/schedule",
            json={"admin_id": "finance-1", "scheduled_date": "2025-07-01"},
        )
        assert scheduled.status_code == HTTPStatus.OK, scheduled.text
        assert scheduled.json()["status"] == "scheduled"
        assert scheduled.json()["scheduled_date"] == "2025-07-01"

        sent = await client.post(
            f"/payouts/{payout_id}/processing",
            json={"admin_id": "finance-1", "payment_reference": "ACH-2025-0001"},
        )
        assert sent.status_code == HTTPStatus.OK
        assert sent.json()["status"] == "processing"
        assert sent.json()["payment_reference"] == "ACH-2025-0001"
        assert sent.json()["sent_at"].startswith("2025-06-15")

        completed = await client.post(f"/payouts/{payout_id}/complete")
        assert completed.status_code == HTTPStatus.OK
        assert completed.json()["status"] == "completed"

        audit = await client.get("/audit-logs", params={"resource_id": payout_id})
        actions = [item["action"] for item in audit.json()["items"]]
        assert {"schedule", "send", "complete"} <= set(actions)

    @pytest.mark.asyncio
    async def test_failed_payment_can_be_resent(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = await approved_payout(client)
        await client.post(f"/payouts/{payout_id}/processing", json={"admin_id": "finance-1"})

        failed = await client.post(
            f"/payouts/{payout_id}/fail",
            json={"admin_id": "finance-1", "reason": "Account closed"},
        )
        assert failed.status_code == HTTPStatus.OK
        body = failed.json()
        assert body["status"] == "failed"
        assert body["failure_reason"] == "Account closed"
        assert body["failed_at"].startswith("2025-06-15")

        alice = await client.get(f"/members/{members['alice'].id}")
        assert alice.json()["status"] == "won"

        not_yet = await client.post(f"/payouts/{payout_id}/complete")
        assert not_yet.status_code == HTTPStatus.CONFLICT

        resent = await client.post(
            f"/payouts/{payout_id}/processing",
            json={"admin_id": "finance-1", "payment_reference": "CHK-1002"},
        )
        assert resent.json()["status"] == "processing"
        assert resent.json()["failure_reason"] == "Account closed"
        completed = await client.post(f"/payouts/{payout_id}/complete")
        assert completed.json()["status"] == "completed"

        audit = await client.get(
            "/audit-logs", params={"resource_id": payout_id, "action": "fail"}
        )
        assert audit.json()["items"][0]["details"]["reason"] == "Account closed"

    @pytest.mark.asyncio
    async def test_requires_approval(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = (await open_round(client))["created"][0]["id"]

        for path, body in [
            ("schedule", {"admin_id": "finance-1", "scheduled_date": "2025-07-01"}),
            ("processing", {"admin_id": "finance-1"}),
            ("fail", {"admin_id": "finance-1", "reason": "Bounced"}),
        ]:
            response = await client.post(f"/payouts/{payout_id}/{path}", json=body)
            assert response.status_code == HTTPStatus.CONFLICT, path
            assert response.json()["error_code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_completed_payout_is_final(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = await approved_payout(client)
        await client.post(f"/payouts/{payout_id}/complete")

        response = await client.post(
            f"/payouts/{payout_id}/fail", json={"admin_id": "finance-1", "reason": "Late"}
        )
        assert response.status_code == HTTPStatus.CONFLICT

    @pytest.mark.asyncio
    async def test_schedule_in_the_past(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = await approved_payout(client)

        response = await client.post(
            f"/payouts/{payout_id}/schedule",
            json={"admin_id": "finance-1", "scheduled_date": "2025-06-01"},
        )
        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.json()["error_code"] == "INVALID_VALUE"

    @pytest.mark.asyncio
    async def test_failure_needs_reason(
        self, client: AsyncClient, members: dict[str, Member]
    ) -> None:
        payout_id = await approved_payout(client)

        response = await client.post(f"/payouts/{payout_id}/fail", json={"admin_id": "finance-1"})
        assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_unknown_payout_cannot_be_sent(self, client: AsyncClient) -> None:
        response = await client.post(
            f"/payouts/{uuid4()}/processing", json={"admin_id": "finance-1"}
        )
        assert response.status_code == HTTPStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_list_payouts(client: AsyncClient, members: dict[str, Member]) -> None:
    created = (await open_round(client))["created"]
    await approve(client, created[0]["id"], "admin-1", "admin-2")

    everything = await client.get("/payouts")
    assert everything.status_code == HTTPStatus.OK
    assert everything.json()["total"] == 2

    approved = await client.get("/payouts", params={"payout_status": "approved"})
    assert [p["id"] for p in approved.json()["items"]] == [created[0]["id"]]

    by_member = await client.get("/payouts", params={"member_id": str(members["bob"].id)})
    assert [p["id"] for p in by_member.json()["items"]] == [created[1]["id"]]


@pytest.mark.asyncio
async def test_completed_payout_removes_member_after_delay(
    client: AsyncClient, members: dict[str, Member]
) -> None:
    payout_id = (await open_round(client))["created"][0]["id"]
    await approve(client, payout_id, "admin-1", "admin-2")
    await client.post(f"/payouts/{payout_id}/complete")

    app.dependency_overrides[get_now] = lambda: NOW + timedelta(days=366)
    await client.post("/business-rules/enforce")

    alice = await client.get(f"/members/{members['alice'].id}")
    assert alice.json()["status"] == "removed"
