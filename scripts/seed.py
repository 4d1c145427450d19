"""
GigHub Database Seed Script
===========================

Creates the schema (if missing), loads the default plan catalogue and a few
demo accounts.

Usage:
    python scripts/seed.py

Environment variables:
    DATABASE_URL  -- async connection string (defaults to the app settings)

Idempotent: plans are matched by (plan_tier, user_type) and users by email.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Make the project root importable when run as a plain script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from gighub.core.config import settings  # noqa: E402
from gighub.models import Base, User  # noqa: E402
from gighub.services import auth_service, planLimitsService  # noqa: E402

logger = logging.getLogger("seed")

DEMO_PASSWORD = "gighub-demo-1"

DEMO_USERS: list[dict] = [
    {"email": "admin@gighub.dev", "first_name": "Ana", "last_name": "Admin", "role": "client", "admin": True},
    {"email": "client@gighub.dev", "first_name": "Carla", "last_name": "Cliente", "role": "client"},
    {"email": "provider@gighub.dev", "first_name": "Pedro", "last_name": "Prestador", "role": "provider"},
    {"email": "pro@gighub.dev", "first_name": "Paula", "last_name": "Pro", "role": "both", "plan_tier": "pro"},
]


async def seed_demo_users(session: AsyncSession) -> int:
    inserted = 0
    for item in DEMO_USERS:
        if await auth_service.get_user_by_email(session, item["email"]) is not None:
            continue
        user, _ = await auth_service.register(
            session,
            email=item["email"],
            password=DEMO_PASSWORD,
            first_name=item["first_name"],
            last_name=item["last_name"],
            role=item["role"],
            locale=settings.default_locale,
        )
        user.role_admin = item.get("admin", False)
        user.plan_tier = item.get("plan_tier", settings.default_plan_tier)
        inserted += 1
    await session.flush()
    return inserted


async def run_seed() -> None:
    url = settings.database_url
    logger.info("Database: %s", url.split("@")[-1] if "@" in url else url)

    engine = create_async_engine(url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        async with session.begin():
            await session.execute(text("SELECT 1"))

            count = await planLimitsService.seed_plan_limits(session)
            logger.info("[1/2] %d plan rows inserted", count)

            count = await seed_demo_users(session)
            logger.info("[2/2] %d demo users inserted", count)

    await engine.dispose()
    logger.info("Seed complete.")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(run_seed())
    except KeyboardInterrupt:
        logger.warning("Seed interrupted by user.")
        sys.exit(1)


if __name__ == "__main__":
    main()
