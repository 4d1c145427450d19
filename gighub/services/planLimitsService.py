"""
Plan Limits Service -- quota ledger
===================================

Meters the three plan-limited actions (contact reveal, proposal submission,
gig response) against the caps configured in ``plan_limits``.

Usage is never stored as a counter. Each consumed unit is an append-only
``UsageRecord``; the amount used in the current reset window is the sum of
``credits_used`` since the window start.

Concurrency: ``can_perform_action`` followed by ``consume_quota`` is a
read-then-write sequence. Two concurrent requests for the same user can both
pass the check, so a cap can be overshot by the number of racing requests.
Quotas are therefore a soft limit. Setting
``settings.quota_serialize_consumption`` locks the user row
(``SELECT ... FOR UPDATE``) inside ``consume_quota`` before counting, which
serialises consumers on databases that support row locks.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.core.config import settings
from gighub.models import (
    UNLIMITED,
    PlanLimit,
    QuotaAction,
    ResetPeriod,
    UsageRecord,
    User,
)
from gighub.services.results import (
    ErrorCode,
    ServiceError,
    ServiceResult,
    service_error,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QuotaCheck:
    """Outcome of a quota lookup for one user and action."""
    allowed: bool
    remaining: int = 0
    used: int = 0
    limit: int = 0
    plan_tier: Optional[str] = None
    reset_at: Optional[datetime] = None
    error: Optional[ServiceError] = None

    @property
    def unlimited(self) -> bool:
        return self.limit >= UNLIMITED


@dataclass(frozen=True)
class ConsumeResult:
    success: bool
    remaining: int = 0
    error: Optional[ServiceError] = None


@dataclass(frozen=True)
class ActionQuota:
    action: QuotaAction
    used: int
    limit: int
    remaining: int

    @property
    def unlimited(self) -> bool:
        return self.limit >= UNLIMITED


@dataclass(frozen=True)
class QuotaSummary:
    """Usage of every metered action for a user in the current window."""
    plan_tier: str
    user_type: str
    reset_period: str
    reset_at: Optional[datetime]
    quotas: list[ActionQuota] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Default catalogue
# ---------------------------------------------------------------------------

DEFAULT_PLAN_LIMITS: list[dict[str, Any]] = [
    {
        "plan_tier": "free",
        "user_type": "both",
        "contact_views_limit": 3,
        "proposals_limit": 1,
        "gig_responses_limit": 1,
        "has_search_boost": False,
        "has_profile_highlight": False,
        "badge_text": None,
        "reset_period": ResetPeriod.MONTHLY.value,
        "features": {},
        "price": Decimal("0.00"),
    },
    {
        "plan_tier": "essential",
        "user_type": "both",
        "contact_views_limit": 25,
        "proposals_limit": 20,
        "gig_responses_limit": 50,
        "has_search_boost": False,
        "has_profile_highlight": False,
        "badge_text": "Essential",
        "reset_period": ResetPeriod.MONTHLY.value,
        "features": {"email_support": True},
        "price": Decimal("9.99"),
    },
    {
        "plan_tier": "pro",
        "user_type": "both",
        "contact_views_limit": 100,
        "proposals_limit": 60,
        "gig_responses_limit": 150,
        "has_search_boost": True,
        "has_profile_highlight": False,
        "badge_text": "Pro",
        "reset_period": ResetPeriod.MONTHLY.value,
        "features": {"email_support": True, "proposal_templates": True},
        "price": Decimal("19.99"),
    },
    {
        "plan_tier": "unlimited",
        "user_type": "both",
        "contact_views_limit": UNLIMITED,
        "proposals_limit": UNLIMITED,
        "gig_responses_limit": UNLIMITED,
        "has_search_boost": True,
        "has_profile_highlight": True,
        "badge_text": "Unlimited",
        "reset_period": ResetPeriod.MONTHLY.value,
        "features": {
            "email_support": True,
            "proposal_templates": True,
            "priority_support": True,
        },
        "price": Decimal("39.99"),
    },
]

# Message shown when a cap is hit, per action
_LIMIT_MESSAGE_KEYS: dict[QuotaAction, str] = {
    QuotaAction.CONTACT_VIEW: "insufficient_contact_credits",
    QuotaAction.PROPOSAL: "proposal_limit_reached",
    QuotaAction.GIG_RESPONSE: "gig_response_limit_reached",
}

_FEATURE_LABELS: dict[QuotaAction, str] = {
    QuotaAction.CONTACT_VIEW: "contact views",
    QuotaAction.PROPOSAL: "proposals",
    QuotaAction.GIG_RESPONSE: "gig responses",
}


# ---------------------------------------------------------------------------
# Reset windows
# ---------------------------------------------------------------------------

def window_start(reset_period: str, now: datetime) -> Optional[datetime]:
    """Return the UTC start of the reset window containing ``now``.

    ``never`` has no lower bound and returns ``None``. Unknown periods are
    treated as monthly.
    """
    now = now.astimezone(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if reset_period == ResetPeriod.NEVER.value:
        return None
    if reset_period == ResetPeriod.DAILY.value:
        return midnight
    if reset_period == ResetPeriod.WEEKLY.value:
        return midnight - timedelta(days=midnight.weekday())
    if reset_period == ResetPeriod.YEARLY.value:
        return midnight.replace(month=1, day=1)
    if reset_period != ResetPeriod.MONTHLY.value:
        logger.warning("Unknown reset period %r, using monthly", reset_period)
    return midnight.replace(day=1)


def next_reset(reset_period: str, now: datetime) -> Optional[datetime]:
    """Return the start of the window following the one containing ``now``."""
    start = window_start(reset_period, now)
    if start is None:
        return None
    if reset_period == ResetPeriod.DAILY.value:
        return start + timedelta(days=1)
    if reset_period == ResetPeriod.WEEKLY.value:
        return start + timedelta(days=7)
    if reset_period == ResetPeriod.YEARLY.value:
        return start.replace(year=start.year + 1)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _remaining(limit: int, used: int) -> int:
    if limit >= UNLIMITED:
        return UNLIMITED
    return max(limit - used, 0)


async def _get_user(
    db: AsyncSession, user_id: uuid.UUID, *, lock: bool = False
) -> Optional[User]:
    stmt = select(User).where(User.id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def resolve_plan_limit(
    db: AsyncSession, plan_tier: str, user_type: str
) -> Optional[PlanLimit]:
    """Find the limits for a tier, preferring the exact user type over
    the shared ``both`` row."""
    result = await db.execute(
        select(PlanLimit).where(
            PlanLimit.plan_tier == plan_tier,
            or_(PlanLimit.user_type == user_type, PlanLimit.user_type == "both"),
        )
    )
    rows = list(result.scalars().all())
    for row in rows:
        if row.user_type == user_type:
            return row
    return rows[0] if rows else None


async def _sum_usage(
    db: AsyncSession,
    user_id: uuid.UUID,
    action: QuotaAction,
    since: Optional[datetime],
) -> int:
    stmt = select(func.coalesce(func.sum(UsageRecord.credits_used), 0)).where(
        UsageRecord.user_id == user_id,
        UsageRecord.action_type == action.value,
    )
    if since is not None:
        stmt = stmt.where(UsageRecord.created_at >= since)
    result = await db.execute(stmt)
    return int(result.scalar_one() or 0)


async def _check(
    db: AsyncSession,
    user_id: uuid.UUID,
    action: QuotaAction,
    *,
    locale: Optional[str],
    lock: bool,
) -> QuotaCheck:
    user = await _get_user(db, user_id, lock=lock)
    if user is None:
        return QuotaCheck(
            allowed=False,
            error=service_error(ErrorCode.NOT_FOUND, "user_not_found", locale),
        )
    locale = locale or user.locale

    plan = await resolve_plan_limit(db, user.plan_tier, user.user_type.value)
    if plan is None:
        logger.error(
            "No plan limits for tier=%s user_type=%s (user %s)",
            user.plan_tier, user.user_type.value, user_id,
        )
        return QuotaCheck(
            allowed=False,
            plan_tier=user.plan_tier,
            error=service_error(
                ErrorCode.NOT_FOUND, "plan_not_found", locale,
                plan_tier=user.plan_tier,
            ),
        )

    now = datetime.now(timezone.utc)
    limit = plan.limit_for(action)
    used = await _sum_usage(db, user_id, action, window_start(plan.reset_period, now))
    allowed = used < limit

    return QuotaCheck(
        allowed=allowed,
        remaining=_remaining(limit, used),
        used=used,
        limit=limit,
        plan_tier=user.plan_tier,
        reset_at=next_reset(plan.reset_period, now),
        error=None if allowed else service_error(
            ErrorCode.QUOTA_EXCEEDED, _LIMIT_MESSAGE_KEYS[action], locale
        ),
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def can_perform_action(
    db: AsyncSession,
    user_id: uuid.UUID,
    action: QuotaAction | str,
    *,
    locale: Optional[str] = None,
) -> QuotaCheck:
    """Report whether ``user_id`` may perform one more ``action``.

    Fails closed: an unknown user, a missing plan row, or a database error
    all yield ``allowed=False`` with an explanatory error.
    """
    action = QuotaAction(action)
    try:
        return await _check(db, user_id, action, locale=locale, lock=False)
    except SQLAlchemyError:
        logger.exception("Quota check failed for user %s action %s", user_id, action.value)
        return QuotaCheck(
            allowed=False,
            error=service_error(ErrorCode.INTERNAL, "internal_error", locale),
        )


async def consume_quota(
    db: AsyncSession,
    user_id: uuid.UUID,
    action: QuotaAction | str,
    target_id: Optional[uuid.UUID] = None,
    target_type: Optional[str] = None,
    *,
    metadata: Optional[dict[str, Any]] = None,
    locale: Optional[str] = None,
) -> ConsumeResult:
    """Append one usage record for ``action`` if the cap still allows it.

    The allowance is re-checked here even when the caller has just called
    ``can_perform_action``; if another request used the last unit in the
    meantime this returns ``success=False`` and writes nothing.
    """
    action = QuotaAction(action)
    try:
        check = await _check(
            db, user_id, action,
            locale=locale,
            lock=settings.quota_serialize_consumption,
        )
        if not check.allowed:
            logger.info(
                "Quota refused: user=%s action=%s used=%s limit=%s",
                user_id, action.value, check.used, check.limit,
            )
            return ConsumeResult(success=False, error=check.error)

        record = UsageRecord(
            user_id=user_id,
            action_type=action.value,
            target_id=target_id,
            target_type=target_type,
            credits_used=1,
            plan_tier=check.plan_tier,
            metadata_json=metadata or {},
        )
        db.add(record)
        await db.flush()
    except SQLAlchemyError:
        logger.exception("Failed to record usage for user %s action %s", user_id, action.value)
        return ConsumeResult(
            success=False,
            error=service_error(ErrorCode.INTERNAL, "internal_error", locale),
        )

    remaining = check.remaining if check.unlimited else max(check.remaining - 1, 0)
    logger.info(
        "Quota consumed: user=%s action=%s target=%s remaining=%s",
        user_id, action.value, target_id, remaining,
    )
    return ConsumeResult(success=True, remaining=remaining)


async def get_user_quotas(
    db: AsyncSession, user_id: uuid.UUID
) -> ServiceResult[QuotaSummary]:
    """Return used/limit/remaining for every metered action."""
    user = await _get_user(db, user_id)
    if user is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "user_not_found")
        )

    user_type = user.user_type.value
    plan = await resolve_plan_limit(db, user.plan_tier, user_type)
    if plan is None:
        return ServiceResult.failure(
            service_error(
                ErrorCode.NOT_FOUND, "plan_not_found", user.locale,
                plan_tier=user.plan_tier,
            )
        )

    now = datetime.now(timezone.utc)
    since = window_start(plan.reset_period, now)
    quotas: list[ActionQuota] = []
    for action in QuotaAction:
        limit = plan.limit_for(action)
        used = await _sum_usage(db, user_id, action, since)
        quotas.append(
            ActionQuota(
                action=action,
                used=used,
                limit=limit,
                remaining=_remaining(limit, used),
            )
        )

    return ServiceResult.success(
        QuotaSummary(
            plan_tier=user.plan_tier,
            user_type=user_type,
            reset_period=plan.reset_period,
            reset_at=next_reset(plan.reset_period, now),
            quotas=quotas,
        )
    )


async def list_plans(db: AsyncSession, user_type: str) -> list[PlanLimit]:
    """Plans offered to ``user_type`` (its own rows plus shared rows),
    cheapest first."""
    result = await db.execute(
        select(PlanLimit)
        .where(or_(PlanLimit.user_type == user_type, PlanLimit.user_type == "both"))
        .order_by(PlanLimit.price.asc(), PlanLimit.plan_tier.asc())
    )
    return list(result.scalars().all())


def describe_plan_features(plan: PlanLimit) -> list[str]:
    """Human-readable feature list for a plan, as shown on the pricing page."""
    features: list[str] = []
    for action in QuotaAction:
        limit = plan.limit_for(action)
        label = _FEATURE_LABELS[action]
        if limit >= UNLIMITED:
            features.append(f"Unlimited {label}")
        elif limit > 0:
            features.append(f"{limit} {label.capitalize()} / {plan.reset_period}")

    if plan.has_search_boost:
        features.append("Search results boost")
    if plan.has_profile_highlight:
        features.append("Profile highlight")

    for key, value in (plan.features or {}).items():
        if value is True:
            features.append(" ".join(word.capitalize() for word in key.split("_")))
    return features


async def seed_plan_limits(
    db: AsyncSession,
    catalogue: Optional[list[dict[str, Any]]] = None,
) -> int:
    """Insert the default plan catalogue, skipping rows that already exist.

    Returns the number of rows inserted.
    """
    inserted = 0
    for entry in catalogue or DEFAULT_PLAN_LIMITS:
        result = await db.execute(
            select(PlanLimit.id).where(
                PlanLimit.plan_tier == entry["plan_tier"],
                PlanLimit.user_type == entry["user_type"],
            )
        )
        if result.scalar_one_or_none() is not None:
            continue
        db.add(PlanLimit(currency=settings.currency, **entry))
        inserted += 1
    await db.flush()
    logger.info("Seeded %d plan limit rows", inserted)
    return inserted
