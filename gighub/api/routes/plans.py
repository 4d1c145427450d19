"""
Plan & Quota API Routes
=======================

  GET  /api/v1/plans             -- Plans offered to a user type
  GET  /api/v1/plans/me/quotas   -- Current usage against the caller's plan
  POST /api/v1/plans/upgrade     -- Switch plan, paying from the wallet first
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from gighub.api.deps import CurrentUser, DBSession, NotifierDep
from gighub.api.errors import unwrap
from gighub.api.schemas.plan import (
    ActionQuotaOut,
    PlanOut,
    QuotaSummaryOut,
    UpgradePlanRequest,
    UpgradeReceiptOut,
)
from gighub.services import planLimitsService, walletService

router = APIRouter(prefix="/plans", tags=["Plans"])


@router.get("", response_model=list[PlanOut], summary="List available plans")
async def list_plans(
    db: DBSession,
    user_type: str = Query(default="both", pattern=r"^(client|provider|both)$"),
) -> list[PlanOut]:
    plans = await planLimitsService.list_plans(db, user_type)
    # ``features`` on the row is the raw flag map; the API shows display strings
    return [
        PlanOut(
            plan_tier=plan.plan_tier,
            user_type=plan.user_type,
            contact_views_limit=plan.contact_views_limit,
            proposals_limit=plan.proposals_limit,
            gig_responses_limit=plan.gig_responses_limit,
            has_search_boost=plan.has_search_boost,
            has_profile_highlight=plan.has_profile_highlight,
            badge_text=plan.badge_text,
            reset_period=plan.reset_period,
            price=plan.price,
            currency=plan.currency,
            features=planLimitsService.describe_plan_features(plan),
        )
        for plan in plans
    ]


@router.get(
    "/me/quotas",
    response_model=QuotaSummaryOut,
    summary="Quota usage for the current window",
)
async def my_quotas(db: DBSession, current_user: CurrentUser) -> QuotaSummaryOut:
    summary = unwrap(await planLimitsService.get_user_quotas(db, current_user.id))
    return QuotaSummaryOut(
        plan_tier=summary.plan_tier,
        user_type=summary.user_type,
        reset_period=summary.reset_period,
        reset_at=summary.reset_at,
        quotas=[
            ActionQuotaOut(
                action=q.action.value,
                used=q.used,
                limit=q.limit,
                remaining=q.remaining,
                unlimited=q.unlimited,
            )
            for q in summary.quotas
        ],
    )


@router.post(
    "/upgrade",
    response_model=UpgradeReceiptOut,
    summary="Upgrade the caller's plan",
    description=(
        "The wallet balance pays first. Any remainder must be covered by a "
        "card charge identified by payment_reference."
    ),
)
async def upgrade_plan(
    body: UpgradePlanRequest,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> UpgradeReceiptOut:
    user_type: Optional[str] = body.user_type or current_user.user_type.value
    receipt = unwrap(
        await walletService.upgrade_plan(
            db,
            current_user,
            body.plan_tier,
            user_type,
            notifier,
            payment_reference=body.payment_reference,
        )
    )
    return UpgradeReceiptOut.model_validate(receipt)
