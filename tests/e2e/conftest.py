"""
E2E test fixtures for the GigHub backend.

Provides:
- An in-process FastAPI test app with all routes registered
- httpx AsyncClient wired via ASGI transport (no network needed)
- An in-memory async SQLite database, recreated for every test
- Pre-populated seed data: the plan catalogue and four users
- A recording notifier in place of the background dispatcher
- Helpers for inserting gigs in a given state and building auth headers

Each request gets its own session that commits on success and rolls back
when the route raises, mirroring ``gighub.api.deps.get_db``.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from gighub.models import Base


@compiles(JSONB, "sqlite")
def compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


# ---------------------------------------------------------------------------
# Test IDs (stable across tests so cross-references work)
# ---------------------------------------------------------------------------

CLIENT_USER_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
PROVIDER_USER_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
PROVIDER_B_USER_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
ADMIN_USER_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")

API = "/api/v1"


# ---------------------------------------------------------------------------
# Async engine + session factory (in-memory SQLite)
# ---------------------------------------------------------------------------

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def _test_engine():
    """A fresh in-memory database per test, shared across connections."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy
    # emit BEGIN itself and turn on foreign keys.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, _):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(_test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=_test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

async def _seed_data(db: AsyncSession) -> None:
    """Insert the plan catalogue and the test users."""
    from gighub.models.user import User, UserStatus
    from gighub.services.planLimitsService import seed_plan_limits

    await seed_plan_limits(db)

    client_user = User(
        id=CLIENT_USER_ID,
        email="client@test.gighub.dev",
        first_name="Jane",
        last_name="Doe",
        phone="+5511990000001",
        locale="en",
        role_client=True,
        role_provider=False,
        role_admin=False,
        plan_tier="free",
        status=UserStatus.ACTIVE,
    )
    provider_user = User(
        id=PROVIDER_USER_ID,
        email="provider@test.gighub.dev",
        first_name="João",
        last_name="Silva",
        phone="+5511990000002",
        locale="pt",
        role_client=False,
        role_provider=True,
        role_admin=False,
        plan_tier="free",
        status=UserStatus.ACTIVE,
    )
    provider_b_user = User(
        id=PROVIDER_B_USER_ID,
        email="provider-b@test.gighub.dev",
        first_name="Mike",
        last_name="Brown",
        locale="en",
        role_client=False,
        role_provider=True,
        role_admin=False,
        plan_tier="pro",
        status=UserStatus.ACTIVE,
    )
    admin_user = User(
        id=ADMIN_USER_ID,
        email="admin@test.gighub.dev",
        first_name="Admin",
        last_name="User",
        locale="en",
        role_client=False,
        role_provider=False,
        role_admin=True,
        plan_tier="free",
        status=UserStatus.ACTIVE,
    )
    db.add_all([client_user, provider_user, provider_b_user, admin_user])
    await db.flush()


@pytest_asyncio.fixture
async def seeded_factory(session_factory) -> async_sessionmaker[AsyncSession]:
    """Session factory over a database that already holds the seed data."""
    async with session_factory() as session:
        await _seed_data(session)
        await session.commit()
    return session_factory


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class RecordingNotifier:
    """Collects triggered events instead of delivering them."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def trigger(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[dict[str, Any]]:
        return [payload for event_name, payload in self.events if event_name == name]


@pytest_asyncio.fixture
async def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# ---------------------------------------------------------------------------
# FastAPI test application
# ---------------------------------------------------------------------------

def _create_test_app(
    factory: async_sessionmaker[AsyncSession], notifier: RecordingNotifier
):
    """Build a FastAPI app with all routes registered and the DB and
    notifier dependencies overridden."""
    from fastapi import FastAPI

    from gighub.api.deps import get_db, get_notifier
    from gighub.api.routes.auth import router as auth_router
    from gighub.api.routes.completions import router as completions_router
    from gighub.api.routes.conversations import router as conversations_router
    from gighub.api.routes.gigs import router as gigs_router
    from gighub.api.routes.notifications import router as notifications_router
    from gighub.api.routes.plans import router as plans_router
    from gighub.api.routes.proposals import router as proposals_router
    from gighub.api.routes.wallet import router as wallet_router

    app = FastAPI(title="GigHub Test")

    async def _override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    for router in (
        auth_router,
        plans_router,
        gigs_router,
        proposals_router,
        completions_router,
        wallet_router,
        conversations_router,
        notifications_router,
    ):
        app.include_router(router, prefix=API)

    return app


@pytest_asyncio.fixture
async def client(
    seeded_factory, notifier: RecordingNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient connected to the test app via ASGI transport."""
    app = _create_test_app(seeded_factory, notifier)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    """Bearer header carrying a fresh access token for ``user_id``."""
    from gighub.services.auth_service import create_access_token

    token, _ = create_access_token(user_id)
    return {"Authorization": f"Bearer {token}"}


async def insert_gig(
    factory: async_sessionmaker[AsyncSession],
    *,
    status: str = "approved",
    author_id: uuid.UUID = CLIENT_USER_ID,
    provider_id: Optional[uuid.UUID] = None,
    price: str = "150.00",
    agreed_price: Optional[str] = None,
    title: str = "Build a landing page",
) -> uuid.UUID:
    """Insert a gig directly in the given status and return its id."""
    from gighub.models import Gig, GigStatus

    async with factory() as session:
        gig = Gig(
            author_id=author_id,
            provider_id=provider_id,
            title=title,
            description="Single page with a contact form",
            category="web",
            price=Decimal(price),
            agreed_price=Decimal(agreed_price) if agreed_price else None,
            status=GigStatus(status),
        )
        session.add(gig)
        await session.commit()
        return gig.id


def proposal_payload(gig_id: uuid.UUID, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "gig_id": str(gig_id),
        "proposal_title": "Responsive landing page in a week",
        "proposal_description": "Five years building marketing sites",
        "proposed_price": "120.00",
        "timeline_days": 7,
        "deliverables": ["Landing page", "Contact form"],
    }
    payload.update(overrides)
    return payload
