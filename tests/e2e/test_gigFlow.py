"""
E2E: Accounts, gig lifecycle, conversations and notifications.

Tests:
- Registration, login, token refresh and the current-user endpoint
- Publishing a gig, admin moderation, browsing and cancellation
- Messaging inside the conversation opened by a response
- Background notification delivery, history and read receipts
- Device registration and push preferences
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from gighub.events.gigEvents import build_plan_upgraded_event
from gighub.models import Notification
from gighub.services.notificationDispatcher import NotificationDispatcher
from tests.e2e.conftest import (
    ADMIN_USER_ID,
    API,
    CLIENT_USER_ID,
    PROVIDER_B_USER_ID,
    PROVIDER_USER_ID,
    auth_headers,
    insert_gig,
)


pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class TestAuth:

    async def test_register_login_me(self, client: AsyncClient):
        register = await client.post(
            f"{API}/auth/register",
            json={
                "email": "New.Provider@Example.com",
                "password": "s3cret-pass",
                "firstName": "Rita",
                "lastName": "Lopes",
                "role": "provider",
                "locale": "pt",
            },
        )
        assert register.status_code == 201
        data = register.json()["data"]
        assert data["user"]["email"] == "new.provider@example.com"
        assert data["user"]["role"] == "provider"
        assert data["user"]["planTier"] == "free"
        assert data["tokens"]["accessToken"]

        login = await client.post(
            f"{API}/auth/login",
            json={"email": "new.provider@example.com", "password": "s3cret-pass"},
        )
        assert login.status_code == 200
        token = login.json()["data"]["tokens"]["accessToken"]

        me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["user"]["id"] == data["user"]["id"]

    async def test_duplicate_email_returns_409(self, client: AsyncClient):
        payload = {
            "email": "client@test.gighub.dev",
            "password": "another-pass",
            "firstName": "Dup",
            "lastName": "User",
        }
        resp = await client.post(f"{API}/auth/register", json=payload)
        assert resp.status_code == 409

    async def test_refresh_issues_new_tokens(self, client: AsyncClient):
        register = await client.post(
            f"{API}/auth/register",
            json={
                "email": "refresh@example.com",
                "password": "refresh-pass",
                "firstName": "Rui",
                "lastName": "Costa",
            },
        )
        tokens = register.json()["data"]["tokens"]

        resp = await client.post(
            f"{API}/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
        )
        assert resp.status_code == 200
        fresh = resp.json()["data"]["tokens"]
        assert fresh["accessToken"]
        assert fresh["refreshToken"]

        me = await client.get(
            f"{API}/auth/me", headers={"Authorization": f"Bearer {fresh['accessToken']}"}
        )
        assert me.status_code == 200
        assert me.json()["data"]["user"]["email"] == "refresh@example.com"

    async def test_tokens_are_not_interchangeable(self, client: AsyncClient):
        register = await client.post(
            f"{API}/auth/register",
            json={
                "email": "swap@example.com",
                "password": "swap-password",
                "firstName": "Ana",
                "lastName": "Reis",
            },
        )
        tokens = register.json()["data"]["tokens"]

        # An access token cannot be refreshed
        resp = await client.post(
            f"{API}/auth/refresh", json={"refreshToken": tokens["accessToken"]}
        )
        assert resp.status_code == 401

        # A refresh token cannot authenticate requests
        me = await client.get(
            f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['refreshToken']}"}
        )
        assert me.status_code == 401

    async def test_garbage_refresh_token_returns_401(self, client: AsyncClient):
        resp = await client.post(f"{API}/auth/refresh", json={"refreshToken": "not-a-jwt"})
        assert resp.status_code == 401

    async def test_wrong_password_returns_401(self, client: AsyncClient):
        await client.post(
            f"{API}/auth/register",
            json={
                "email": "someone@example.com",
                "password": "right-password",
                "firstName": "Some",
                "lastName": "One",
            },
        )
        resp = await client.post(
            f"{API}/auth/login",
            json={"email": "someone@example.com", "password": "wrong-password"},
        )
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Gig lifecycle
# ---------------------------------------------------------------------------


class TestGigLifecycle:

    async def test_publish_and_moderate(self, client: AsyncClient, notifier):
        created = await client.post(
            f"{API}/gigs",
            json={
                "title": "Translate a menu",
                "description": "Two pages, EN to PT",
                "price": "40.00",
                "category": "translation",
            },
            headers=auth_headers(CLIENT_USER_ID),
        )
        assert created.status_code == 201
        gig = created.json()
        assert gig["status"] == "pending"
        assert gig["author_id"] == str(CLIENT_USER_ID)

        # Pending gigs are not on the marketplace yet
        browse = await client.get(f"{API}/gigs", headers=auth_headers(PROVIDER_USER_ID))
        assert gig["id"] not in [g["id"] for g in browse.json()]

        approved = await client.post(
            f"{API}/gigs/{gig['id']}/moderate",
            json={"approve": True},
            headers=auth_headers(ADMIN_USER_ID),
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert notifier.names() == ["gig_approved"]

        browse = await client.get(
            f"{API}/gigs",
            params={"category": "translation"},
            headers=auth_headers(PROVIDER_USER_ID),
        )
        assert [g["id"] for g in browse.json()] == [gig["id"]]

        mine = await client.get(
            f"{API}/gigs", params={"mine": True}, headers=auth_headers(CLIENT_USER_ID)
        )
        assert [g["id"] for g in mine.json()] == [gig["id"]]

    async def test_invalid_gig_returns_422(self, client: AsyncClient):
        resp = await client.post(
            f"{API}/gigs",
            json={"title": "Free work", "description": "Please", "price": "0"},
            headers=auth_headers(CLIENT_USER_ID),
        )
        assert resp.status_code == 422

    async def test_reject_with_reason(self, client: AsyncClient, seeded_factory, notifier):
        gig_id = await insert_gig(seeded_factory, status="pending")
        resp = await client.post(
            f"{API}/gigs/{gig_id}/moderate",
            json={"approve": False, "reason": "Contact details in the description"},
            headers=auth_headers(ADMIN_USER_ID),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        assert resp.json()["rejection_reason"] == "Contact details in the description"
        assert notifier.names() == ["gig_rejected"]

    async def test_only_admins_moderate(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(seeded_factory, status="pending")
        resp = await client.post(
            f"{API}/gigs/{gig_id}/moderate",
            json={"approve": True},
            headers=auth_headers(CLIENT_USER_ID),
        )
        assert resp.status_code == 403

    async def test_moderating_twice_returns_409(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(seeded_factory, status="approved")
        resp = await client.post(
            f"{API}/gigs/{gig_id}/moderate",
            json={"approve": True},
            headers=auth_headers(ADMIN_USER_ID),
        )
        assert resp.status_code == 409

    async def test_owner_cancels_open_gig(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(seeded_factory)
        resp = await client.post(
            f"{API}/gigs/{gig_id}/cancel", headers=auth_headers(CLIENT_USER_ID)
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

    async def test_owner_cannot_cancel_started_gig(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(
            seeded_factory, status="in_progress", provider_id=PROVIDER_B_USER_ID
        )
        resp = await client.post(
            f"{API}/gigs/{gig_id}/cancel", headers=auth_headers(CLIENT_USER_ID)
        )
        assert resp.status_code == 403

        admin = await client.post(
            f"{API}/gigs/{gig_id}/cancel", headers=auth_headers(ADMIN_USER_ID)
        )
        assert admin.status_code == 200

    async def test_stranger_cannot_cancel(self, client: AsyncClient, seeded_factory):
        gig_id = await insert_gig(seeded_factory)
        resp = await client.post(
            f"{API}/gigs/{gig_id}/cancel", headers=auth_headers(PROVIDER_USER_ID)
        )
        assert resp.status_code == 403

    async def test_unknown_gig_returns_404(self, client: AsyncClient):
        resp = await client.get(f"{API}/gigs/{uuid.uuid4()}", headers=auth_headers(CLIENT_USER_ID))
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


class TestConversations:

    async def _open(self, client, factory) -> str:
        gig_id = await insert_gig(factory, title="Fix my sink")
        resp = await client.post(
            f"{API}/gigs/{gig_id}/respond", headers=auth_headers(PROVIDER_B_USER_ID)
        )
        return resp.json()["conversation_id"]

    async def test_exchange_messages(self, client: AsyncClient, seeded_factory):
        conversation_id = await self._open(client, seeded_factory)

        sent = await client.post(
            f"{API}/conversations/{conversation_id}/messages",
            json={"content": "Hi, I can come tomorrow"},
            headers=auth_headers(PROVIDER_B_USER_ID),
        )
        assert sent.status_code == 201
        assert sent.json()["sender_id"] == str(PROVIDER_B_USER_ID)

        inbox = await client.get(f"{API}/conversations", headers=auth_headers(CLIENT_USER_ID))
        (summary,) = inbox.json()
        assert summary["id"] == conversation_id
        assert summary["gig_title"] == "Fix my sink"
        assert summary["counterpart_id"] == str(PROVIDER_B_USER_ID)
        assert summary["counterpart_name"] == "Mike Brown"
        assert summary["unread_count"] == 1

        messages = await client.get(
            f"{API}/conversations/{conversation_id}/messages",
            headers=auth_headers(CLIENT_USER_ID),
        )
        assert [m["content"] for m in messages.json()] == ["Hi, I can come tomorrow"]

        inbox = await client.get(f"{API}/conversations", headers=auth_headers(CLIENT_USER_ID))
        assert inbox.json()[0]["unread_count"] == 0

    async def test_outsider_cannot_read(self, client: AsyncClient, seeded_factory):
        conversation_id = await self._open(client, seeded_factory)
        resp = await client.get(
            f"{API}/conversations/{conversation_id}/messages",
            headers=auth_headers(PROVIDER_USER_ID),
        )
        assert resp.status_code == 403

    async def test_empty_message_returns_422(self, client: AsyncClient, seeded_factory):
        conversation_id = await self._open(client, seeded_factory)
        resp = await client.post(
            f"{API}/conversations/{conversation_id}/messages",
            json={"content": "   "},
            headers=auth_headers(CLIENT_USER_ID),
        )
        assert resp.status_code == 422

    async def test_unknown_conversation_returns_404(self, client: AsyncClient):
        resp = await client.get(
            f"{API}/conversations/{uuid.uuid4()}/messages",
            headers=auth_headers(CLIENT_USER_ID),
        )
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class TestNotifications:

    async def test_dispatcher_stores_localised_notification(
        self, client: AsyncClient, seeded_factory
    ):
        dispatcher = NotificationDispatcher(seeded_factory)
        dispatcher.trigger(
            "plan_upgraded",
            build_plan_upgraded_event(CLIENT_USER_ID, "pro", Decimal("19.99"), "EUR"),
        )
        dispatcher.trigger(
            "plan_upgraded",
            build_plan_upgraded_event(PROVIDER_USER_ID, "pro", Decimal("19.99"), "EUR"),
        )
        await dispatcher.drain()
        assert dispatcher.pending == 0

        async with seeded_factory() as session:
            result = await session.execute(
                select(Notification).where(Notification.user_id == PROVIDER_USER_ID)
            )
            (stored,) = result.scalars().all()
            assert stored.title == "Plano atualizado"
            assert stored.sent_at is None

        history = await client.get(f"{API}/notifications", headers=auth_headers(CLIENT_USER_ID))
        (item,) = history.json()
        assert item["notification_type"] == "plan_upgraded"
        assert item["title"] == "Plan upgraded"
        assert item["body"] == "You are now on the pro plan."
        assert item["read"] is False

        read = await client.post(
            f"{API}/notifications/{item['id']}/read", headers=auth_headers(CLIENT_USER_ID)
        )
        assert read.status_code == 200
        assert read.json()["read"] is True

        unread = await client.get(
            f"{API}/notifications",
            params={"unread_only": True},
            headers=auth_headers(CLIENT_USER_ID),
        )
        assert unread.json() == []

    async def test_delivery_to_unknown_user_is_dropped(self, seeded_factory):
        dispatcher = NotificationDispatcher(seeded_factory)
        dispatcher.trigger(
            "plan_upgraded",
            build_plan_upgraded_event(uuid.uuid4(), "pro", Decimal("19.99"), "EUR"),
        )
        await dispatcher.drain()

        async with seeded_factory() as session:
            result = await session.execute(select(Notification))
            assert result.scalars().all() == []

    async def test_cannot_read_someone_elses_notification(
        self, client: AsyncClient, seeded_factory
    ):
        dispatcher = NotificationDispatcher(seeded_factory)
        dispatcher.trigger(
            "plan_upgraded",
            build_plan_upgraded_event(CLIENT_USER_ID, "pro", Decimal("19.99"), "EUR"),
        )
        await dispatcher.drain()
        (item,) = (
            await client.get(f"{API}/notifications", headers=auth_headers(CLIENT_USER_ID))
        ).json()

        resp = await client.post(
            f"{API}/notifications/{item['id']}/read", headers=auth_headers(PROVIDER_USER_ID)
        )
        assert resp.status_code == 404

    async def test_register_device(self, client: AsyncClient):
        headers = auth_headers(PROVIDER_USER_ID)
        payload = {"device_token": "fcm-token-abc", "platform": "Android", "app_version": "1.2.0"}

        first = await client.post(f"{API}/notifications/devices", json=payload, headers=headers)
        assert first.status_code == 201
        assert first.json()["platform"] == "android"
        assert first.json()["is_active"] is True

        again = await client.post(f"{API}/notifications/devices", json=payload, headers=headers)
        assert again.json()["id"] == first.json()["id"]

    async def test_invalid_platform_returns_422(self, client: AsyncClient):
        resp = await client.post(
            f"{API}/notifications/devices",
            json={"device_token": "fcm-token-abc", "platform": "symbian"},
            headers=auth_headers(PROVIDER_USER_ID),
        )
        assert resp.status_code == 422

    async def test_preferences_defaults_and_update(self, client: AsyncClient):
        headers = auth_headers(PROVIDER_USER_ID)

        defaults = await client.get(f"{API}/notifications/preferences", headers=headers)
        assert defaults.status_code == 200
        assert defaults.json()["proposal_updates"] is True
        assert defaults.json()["marketing"] is False

        updated = await client.put(
            f"{API}/notifications/preferences",
            json={"proposal_updates": False},
            headers=headers,
        )
        assert updated.json()["proposal_updates"] is False
        assert updated.json()["gig_updates"] is True

        current = await client.get(f"{API}/notifications/preferences", headers=headers)
        assert current.json()["proposal_updates"] is False
