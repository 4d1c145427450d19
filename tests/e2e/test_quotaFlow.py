"""
E2E: Quota ledger and contact reveal gate.

Tests the metered contact reveal end to end:
- Plan catalogue listing with display features
- Quota summary for the current window
- First reveal consumes a contact_view unit, repeats are free
- The cap is enforced (402) and a refused reveal writes nothing
- The owner always sees their own contact for free
- Access checks report the reason without consuming anything
"""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from gighub.models import ContactUnlock, UsageRecord
from tests.e2e.conftest import (
    API,
    CLIENT_USER_ID,
    PROVIDER_B_USER_ID,
    PROVIDER_USER_ID,
    auth_headers,
    insert_gig,
)


pytestmark = pytest.mark.asyncio


async def _usage_count(factory, user_id: uuid.UUID, action: str) -> int:
    async with factory() as session:
        result = await session.execute(
            select(func.count())
            .select_from(UsageRecord)
            .where(UsageRecord.user_id == user_id, UsageRecord.action_type == action)
        )
        return result.scalar_one()


def _quota(body: dict, action: str) -> dict:
    return next(q for q in body["quotas"] if q["action"] == action)


class TestPlanCatalogue:

    async def test_list_plans_cheapest_first(self, client: AsyncClient):
        resp = await client.get(f"{API}/plans")
        assert resp.status_code == 200
        plans = resp.json()
        assert [p["plan_tier"] for p in plans] == ["free", "essential", "pro", "unlimited"]

        free = plans[0]
        assert free["contact_views_limit"] == 3
        assert "1 Proposals / monthly" in free["features"]

        unlimited = plans[-1]
        assert "Unlimited proposals" in unlimited["features"]
        assert "Profile highlight" in unlimited["features"]
        assert "Priority Support" in unlimited["features"]

    async def test_invalid_user_type_returns_422(self, client: AsyncClient):
        resp = await client.get(f"{API}/plans", params={"user_type": "admin"})
        assert resp.status_code == 422


class TestQuotaSummary:

    async def test_fresh_free_user(self, client: AsyncClient):
        resp = await client.get(f"{API}/plans/me/quotas", headers=auth_headers(PROVIDER_USER_ID))
        assert resp.status_code == 200
        body = resp.json()
        assert body["plan_tier"] == "free"
        assert body["user_type"] == "provider"
        assert body["reset_period"] == "monthly"
        assert body["reset_at"] is not None

        contact = _quota(body, "contact_view")
        assert contact == {
            "action": "contact_view",
            "used": 0,
            "limit": 3,
            "remaining": 3,
            "unlimited": False,
        }

    async def test_requires_authentication(self, client: AsyncClient):
        resp = await client.get(f"{API}/plans/me/quotas")
        assert resp.status_code in (401, 403)

    async def test_invalid_token_returns_401(self, client: AsyncClient):
        resp = await client.get(
            f"{API}/plans/me/quotas", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401


class TestContactReveal:

    async def test_first_reveal_consumes_one_unit(
        self, client: AsyncClient, seeded_factory, notifier
    ):
        gig_id = await insert_gig(seeded_factory)
        resp = await client.post(
            f"{API}/gigs/{gig_id}/contact", headers=auth_headers(PROVIDER_USER_ID)
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["already_viewed"] is False
        assert body["contact_info"]["user_id"] == str(CLIENT_USER_ID)
        assert body["contact_info"]["email"] == "client@test.gighub.dev"
        assert body["contact_info"]["name"] == "Jane Doe"

        assert await _usage_count(seeded_factory, PROVIDER_USER_ID, "contact_view") == 1
        assert notifier.names() == ["contact_viewed"]
        event = notifier.payloads("contact_viewed")[0]
        assert event["user_id"] == str(CLIENT_USER_ID)
        assert event["actor_id"] == str(PROVIDER_USER_ID)

    async def test_repeat_reveal_is_free(self, client: AsyncClient, seeded_factory, notifier):
        gig_id = await insert_gig(seeded_factory)
        headers = auth_headers(PROVIDER_USER_ID)

        first = await client.post(f"{API}/gigs/{gig_id}/contact", headers=headers)
        second = await client.post(f"{API}/gigs/{gig_id}/contact", headers=headers)

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["already_viewed"] is True
        assert second.json()["contact_info"] == first.json()["contact_info"]
        assert await _usage_count(seeded_factory, PROVIDER_USER_ID, "contact_view") == 1
        # Only the first reveal notifies the owner
        assert notifier.names() == ["contact_viewed"]

    async def test_cap_enforced_on_free_plan(self, client: AsyncClient, seeded_factory):
        headers = auth_headers(PROVIDER_USER_ID)
        gig_ids = [await insert_gig(seeded_factory, title=f"Gig {n}") for n in range(4)]

        for gig_id in gig_ids[:3]:
            resp = await client.post(f"{API}/gigs/{gig_id}/contact", headers=headers)
            assert resp.status_code == 200

        resp = await client.post(f"{API}/gigs/{gig_ids[3]}/contact", headers=headers)
        assert resp.status_code == 402
        detail = resp.json()["detail"]
        assert detail["code"] == "quota_exceeded"
        # The provider's locale is Portuguese
        assert detail["message"] == "Créditos insuficientes para desbloquear contacto."

        assert await _usage_count(seeded_factory, PROVIDER_USER_ID, "contact_view") == 3
        async with seeded_factory() as session:
            unlocks = await session.execute(
                select(func.count())
                .select_from(ContactUnlock)
                .where(ContactUnlock.user_id == PROVIDER_USER_ID)
            )
            assert unlocks.scalar_one() == 3

        summary = await client.get(f"{API}/plans/me/quotas", headers=headers)
        contact = _quota(summary.json(), "contact_view")
        assert contact["used"] == 3
        assert contact["remaining"] == 0

    async def test_unlocked_gig_stays_visible_after_cap(
        self, client: AsyncClient, seeded_factory
    ):
        headers = auth_headers(PROVIDER_USER_ID)
        gig_ids = [await insert_gig(seeded_factory, title=f"Gig {n}") for n in range(3)]
        for gig_id in gig_ids:
            await client.post(f"{API}/gigs/{gig_id}/contact", headers=headers)

        resp = await client.post(f"{API}/gigs/{gig_ids[0]}/contact", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["already_viewed"] is True

    async def test_owner_sees_own_contact_for_free(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(seeded_factory)
        resp = await client.post(
            f"{API}/gigs/{gig_id}/contact", headers=auth_headers(CLIENT_USER_ID)
        )
        assert resp.status_code == 200
        assert resp.json()["already_viewed"] is False
        assert await _usage_count(seeded_factory, CLIENT_USER_ID, "contact_view") == 0

    async def test_unknown_gig_returns_404(self, client: AsyncClient):
        resp = await client.post(
            f"{API}/gigs/{uuid.uuid4()}/contact", headers=auth_headers(PROVIDER_USER_ID)
        )
        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "not_found"


class TestContactAccess:

    async def test_reasons(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(seeded_factory)
        url = f"{API}/gigs/{gig_id}/contact/access"

        owner = await client.get(url, headers=auth_headers(CLIENT_USER_ID))
        assert owner.json()["reason"] == "owner"

        before = await client.get(url, headers=auth_headers(PROVIDER_B_USER_ID))
        assert before.json() == {"can_view": True, "reason": "has_credits", "remaining": 100}

        await client.post(f"{API}/gigs/{gig_id}/contact", headers=auth_headers(PROVIDER_B_USER_ID))
        after = await client.get(url, headers=auth_headers(PROVIDER_B_USER_ID))
        assert after.json()["reason"] == "already_viewed"

    async def test_check_does_not_consume(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(seeded_factory)
        for _ in range(3):
            await client.get(
                f"{API}/gigs/{gig_id}/contact/access", headers=auth_headers(PROVIDER_USER_ID)
            )
        assert await _usage_count(seeded_factory, PROVIDER_USER_ID, "contact_view") == 0

    async def test_insufficient_credits(self, client: AsyncClient, seeded_factory):
        headers = auth_headers(PROVIDER_USER_ID)
        for n in range(3):
            gig_id = await insert_gig(seeded_factory, title=f"Gig {n}")
            await client.post(f"{API}/gigs/{gig_id}/contact", headers=headers)

        other = await insert_gig(seeded_factory, title="One more")
        resp = await client.get(f"{API}/gigs/{other}/contact/access", headers=headers)
        assert resp.json() == {
            "can_view": False,
            "reason": "insufficient_credits",
            "remaining": 0,
        }

    async def test_unknown_gig_returns_404(self, client: AsyncClient):
        resp = await client.get(
            f"{API}/gigs/{uuid.uuid4()}/contact/access", headers=auth_headers(PROVIDER_USER_ID)
        )
        assert resp.status_code == 404
