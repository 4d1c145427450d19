"""
Shared pytest fixtures for GigHub unit tests.

Provides transient ORM objects (never flushed) that mirror production rows
without requiring a database connection.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

import pytest

from gighub.models import (
    Gig,
    GigStatus,
    JobCompletion,
    PlanLimit,
    Proposal,
    Transaction,
    TransactionCategory,
    TransactionStatus,
    TransactionType,
)


# ---------------------------------------------------------------------------
# Gig fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_gig() -> Gig:
    """An approved gig with a listed price and no provider yet."""
    return Gig(
        id=uuid.uuid4(),
        author_id=uuid.uuid4(),
        title="Paint the living room",
        description="Two walls, paint supplied",
        price=Decimal("120.00"),
        status=GigStatus.APPROVED,
        created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_proposal(sample_gig: Gig) -> Proposal:
    return Proposal(
        id=uuid.uuid4(),
        gig_id=sample_gig.id,
        responder_id=uuid.uuid4(),
        proposal_title="I can do it this week",
        proposal_description="Experienced painter",
        proposed_price=Decimal("100.00"),
        timeline_days=3,
        deliverables=["Two painted walls"],
        status="pending",
        is_counter_proposal=False,
    )


@pytest.fixture
def sample_completion(sample_gig: Gig, sample_proposal: Proposal) -> JobCompletion:
    return JobCompletion(
        id=uuid.uuid4(),
        gig_id=sample_gig.id,
        provider_id=sample_proposal.responder_id,
        description="Walls painted",
        attachments=[],
        status="pending",
    )


# ---------------------------------------------------------------------------
# Plan fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_plan() -> Callable[..., PlanLimit]:
    def _make(**overrides: Any) -> PlanLimit:
        values: dict[str, Any] = {
            "plan_tier": "essential",
            "user_type": "both",
            "contact_views_limit": 25,
            "proposals_limit": 20,
            "gig_responses_limit": 50,
            "has_search_boost": False,
            "has_profile_highlight": False,
            "reset_period": "monthly",
            "features": {},
            "price": Decimal("9.99"),
            "currency": "EUR",
        }
        values.update(overrides)
        return PlanLimit(**values)

    return _make


# ---------------------------------------------------------------------------
# Wallet fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Factory for ledger rows. Amounts are given as magnitudes."""

    def _make(
        type: TransactionType,
        amount: str,
        *,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        metadata: Optional[dict[str, Any]] = None,
        category: TransactionCategory = TransactionCategory.ADJUSTMENT,
    ) -> Transaction:
        magnitude = Decimal(amount)
        return Transaction(
            id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            user_type="provider",
            type=type.value,
            category=category.value,
            amount=magnitude if type == TransactionType.CREDIT else -magnitude,
            currency="EUR",
            status=status.value,
            metadata_json=metadata or {},
        )

    return _make
