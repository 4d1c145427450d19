"""
Pydantic v2 schemas for plans, quotas and plan upgrades.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanOut(BaseModel):
    """A purchasable plan with its caps and a display feature list."""

    model_config = ConfigDict(from_attributes=True)

    plan_tier: str
    user_type: str
    contact_views_limit: int
    proposals_limit: int
    gig_responses_limit: int
    has_search_boost: bool
    has_profile_highlight: bool
    badge_text: Optional[str] = None
    reset_period: str
    price: Decimal
    currency: str
    features: list[str] = Field(default_factory=list)


class ActionQuotaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action: str
    used: int
    limit: int
    remaining: int
    unlimited: bool


class QuotaSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan_tier: str
    user_type: str
    reset_period: str
    reset_at: Optional[datetime] = None
    quotas: list[ActionQuotaOut]


class UpgradePlanRequest(BaseModel):
    plan_tier: str = Field(min_length=1, max_length=50)
    user_type: Optional[str] = Field(
        default=None,
        pattern=r"^(client|provider)$",
        description="Wallet to pay from; defaults to the user's primary role",
    )
    payment_reference: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Reference of a card charge covering what the wallet cannot",
    )


class UpgradeReceiptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan_tier: str
    price: Decimal
    wallet_amount: Decimal
    card_amount: Decimal
    period_end: datetime
