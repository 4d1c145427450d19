"""
SQLAlchemy models for plan limits, usage history, contact unlocks and user
subscriptions (the monetization tables).

``usage_history`` is append-only: one row per consumed unit. Remaining quota
is always derived from it, never stored.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

# Sentinel cap meaning "unbounded". Stored as a plain integer so quota
# arithmetic never has to special-case NULL.
UNLIMITED: int = 2147483647


class QuotaAction(str, enum.Enum):
    CONTACT_VIEW = "contact_view"
    PROPOSAL = "proposal"
    GIG_RESPONSE = "gig_response"


class ResetPeriod(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    NEVER = "never"


class PlanLimit(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Static caps and flags for one (plan tier, user type) pair."""

    __tablename__ = "plan_limits"
    __table_args__ = (
        UniqueConstraint("plan_tier", "user_type", name="uq_plan_limits_tier_type"),
    )

    plan_tier: Mapped[str] = mapped_column(String(50), nullable=False)
    user_type: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="both"
    )

    contact_views_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    proposals_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gig_responses_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    has_search_boost: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_profile_highlight: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    badge_text: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reset_period: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ResetPeriod.MONTHLY.value
    )
    features: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")

    def limit_for(self, action: QuotaAction) -> int:
        """Return the cap configured for a metered action."""
        if action == QuotaAction.CONTACT_VIEW:
            return self.contact_views_limit
        if action == QuotaAction.PROPOSAL:
            return self.proposals_limit
        return self.gig_responses_limit

    def __repr__(self) -> str:
        return f"<PlanLimit(tier={self.plan_tier}, user_type={self.user_type})>"


class UsageRecord(UUIDPrimaryKeyMixin, Base):
    """One consumed quota unit. Never mutated."""

    __tablename__ = "usage_history"
    __table_args__ = (
        Index("ix_usage_history_user_action_created", "user_id", "action_type", "created_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    action_type: Mapped[str] = mapped_column(String(30), nullable=False)
    target_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    target_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    plan_tier: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<UsageRecord(user={self.user_id}, action={self.action_type}, "
            f"target={self.target_id})>"
        )


class ContactUnlock(UUIDPrimaryKeyMixin, Base):
    """Records that a user has revealed the contact details of a gig owner."""

    __tablename__ = "contact_views"
    __table_args__ = (
        UniqueConstraint("user_id", "gig_id", name="uq_contact_views_user_gig"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    gig_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("gigs.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class UserSubscription(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Current subscription period for a user (one row per user)."""

    __tablename__ = "user_subscriptions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    plan_tier: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    current_period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    current_period_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
