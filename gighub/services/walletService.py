"""
Wallet Service
==============

Ledger-backed wallet for clients and providers. A user holds one wallet per
role context (``client`` or ``provider``); each wallet is the set of
``Transaction`` rows for that (user, user_type) pair.

Balance rule:
  balance = sum(|credit amounts|) - sum(|debit amounts|)

computed over the *unfiltered* set, internal bookkeeping rows included.
The user-visible history is the *filtered* set: rows whose metadata carries
``is_internal`` are hidden. Internal rows exist to split a card payment into
a credit/debit pair so the card money passes through the wallet without
changing its balance. Row status is not consulted: pending and failed rows
count like completed ones.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.core.config import settings
from gighub.events.gigEvents import (
    build_plan_upgraded_event,
    build_withdrawal_requested_event,
)
from gighub.models import (
    Gig,
    Transaction,
    TransactionCategory,
    TransactionStatus,
    TransactionType,
    User,
    UserSubscription,
    UserType,
)
from gighub.services.notificationDispatcher import Notifier
from gighub.services.planLimitsService import resolve_plan_limit
from gighub.services.results import ErrorCode, ServiceResult, service_error

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
SUBSCRIPTION_PERIOD = timedelta(days=30)


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WalletSummary:
    user_id: uuid.UUID
    user_type: str
    balance: Decimal
    currency: str
    transactions: list[Transaction] = field(default_factory=list)


@dataclass(frozen=True)
class UpgradeReceipt:
    plan_tier: str
    price: Decimal
    wallet_amount: Decimal
    card_amount: Decimal
    period_end: datetime


# ---------------------------------------------------------------------------
# Pure ledger arithmetic
# ---------------------------------------------------------------------------

def compute_balance(transactions: Iterable[Transaction]) -> Decimal:
    """Sum of credits minus sum of debits over every row, whatever its
    status."""
    balance = ZERO
    for tx in transactions:
        amount = abs(Decimal(tx.amount))
        if tx.type == TransactionType.CREDIT.value:
            balance += amount
        elif tx.type == TransactionType.DEBIT.value:
            balance -= amount
    return balance


def visible_history(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Drop internal bookkeeping rows from a transaction list."""
    return [tx for tx in transactions if not tx.is_internal]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _load_transactions(
    db: AsyncSession, user_id: uuid.UUID, user_type: str
) -> list[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.user_id == user_id, Transaction.user_type == user_type)
        .order_by(Transaction.created_at.desc())
    )
    return list(result.scalars().all())


def _record(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    user_type: str,
    type: TransactionType,
    category: TransactionCategory,
    amount: Decimal,
    description: str,
    status: TransactionStatus = TransactionStatus.COMPLETED,
    reference_id: Optional[uuid.UUID] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Transaction:
    # Stored signed: credits positive, debits negative
    magnitude = abs(Decimal(amount))
    tx = Transaction(
        user_id=user_id,
        user_type=user_type,
        type=type.value,
        category=category.value,
        amount=magnitude if type == TransactionType.CREDIT else -magnitude,
        currency=settings.currency,
        status=status.value,
        description=description,
        reference_id=reference_id,
        metadata_json=metadata or {},
    )
    db.add(tx)
    return tx


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_balance(db: AsyncSession, user_id: uuid.UUID, user_type: str) -> Decimal:
    return compute_balance(await _load_transactions(db, user_id, user_type))


async def get_wallet(
    db: AsyncSession, user_id: uuid.UUID, user_type: str
) -> WalletSummary:
    """Balance from the full ledger, history from the visible rows, newest
    first."""
    transactions = await _load_transactions(db, user_id, user_type)
    return WalletSummary(
        user_id=user_id,
        user_type=user_type,
        balance=compute_balance(transactions),
        currency=settings.currency,
        transactions=visible_history(transactions),
    )


async def release_payment(
    db: AsyncSession,
    provider_id: uuid.UUID,
    gig: Gig,
    amount: Decimal,
) -> Transaction:
    """Credit the provider's wallet for an approved gig."""
    tx = _record(
        db,
        user_id=provider_id,
        user_type=UserType.PROVIDER.value,
        type=TransactionType.CREDIT,
        category=TransactionCategory.JOB_PAYMENT,
        amount=amount,
        description=f"Payment for gig: {gig.title}",
        reference_id=gig.id,
        metadata={"gig_id": str(gig.id), "payment_source": "job_completion"},
    )
    await db.flush()
    logger.info("Payment released: provider=%s gig=%s amount=%s", provider_id, gig.id, amount)
    return tx


async def request_withdrawal(
    db: AsyncSession,
    user: User,
    user_type: str,
    amount: Decimal,
    notifier: Optional[Notifier] = None,
) -> ServiceResult[Transaction]:
    """Book a pending withdrawal debit, bounded by the current balance."""
    amount = Decimal(amount)
    if amount <= 0:
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "invalid_amount", user.locale)
        )

    balance = await get_balance(db, user.id, user_type)
    if amount > balance:
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "insufficient_funds", user.locale)
        )

    try:
        tx = _record(
            db,
            user_id=user.id,
            user_type=user_type,
            type=TransactionType.DEBIT,
            category=TransactionCategory.WITHDRAWAL,
            amount=amount,
            status=TransactionStatus.PENDING,
            description="Withdrawal request",
        )
        await db.flush()
    except SQLAlchemyError:
        logger.exception("Failed to record withdrawal for user %s", user.id)
        return ServiceResult.failure(
            service_error(ErrorCode.INTERNAL, "internal_error", user.locale)
        )

    logger.info("Withdrawal requested: user=%s amount=%s", user.id, amount)
    if notifier is not None:
        notifier.trigger(
            "withdrawal_requested",
            build_withdrawal_requested_event(user.id, tx.id, amount, tx.currency),
        )
    return ServiceResult.success(tx)


async def upgrade_plan(
    db: AsyncSession,
    user: User,
    plan_tier: str,
    user_type: str,
    notifier: Optional[Notifier] = None,
    payment_reference: Optional[str] = None,
) -> ServiceResult[UpgradeReceipt]:
    """Move ``user`` to ``plan_tier``, paying from the wallet first.

    The wallet covers as much of the price as its balance allows. Any
    remainder must already have been charged to a card by the payment
    provider; ``payment_reference`` identifies that charge and is booked as
    an internal credit followed by a visible debit. Without a reference a
    shortfall fails and nothing is written.
    """
    plan = await resolve_plan_limit(db, plan_tier, user_type)
    if plan is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "plan_not_found", user.locale, plan_tier=plan_tier)
        )

    price = Decimal(plan.price)
    balance = await get_balance(db, user.id, user_type)
    wallet_amount = min(max(balance, ZERO), price)
    card_amount = price - wallet_amount

    if card_amount > 0 and not payment_reference:
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "payment_required", user.locale)
        )

    now = datetime.now(timezone.utc)
    description = f"Plan upgrade: {plan_tier}"
    try:
        async with db.begin_nested():
            if wallet_amount > 0:
                _record(
                    db,
                    user_id=user.id,
                    user_type=user_type,
                    type=TransactionType.DEBIT,
                    category=TransactionCategory.PLAN_UPGRADE,
                    amount=wallet_amount,
                    description=description,
                    metadata={"plan_tier": plan_tier, "payment_source": "wallet"},
                )
            if card_amount > 0:
                _record(
                    db,
                    user_id=user.id,
                    user_type=user_type,
                    type=TransactionType.CREDIT,
                    category=TransactionCategory.CARD_TOPUP,
                    amount=card_amount,
                    description="Card payment",
                    metadata={
                        "is_internal": True,
                        "payment_reference": payment_reference,
                    },
                )
                _record(
                    db,
                    user_id=user.id,
                    user_type=user_type,
                    type=TransactionType.DEBIT,
                    category=TransactionCategory.PLAN_UPGRADE,
                    amount=card_amount,
                    description=description,
                    metadata={
                        "plan_tier": plan_tier,
                        "payment_source": "card",
                        "payment_reference": payment_reference,
                    },
                )

            user.plan_tier = plan_tier

            result = await db.execute(
                select(UserSubscription).where(UserSubscription.user_id == user.id)
            )
            subscription = result.scalar_one_or_none()
            if subscription is None:
                subscription = UserSubscription(user_id=user.id, plan_tier=plan_tier)
                db.add(subscription)
            subscription.plan_tier = plan_tier
            subscription.status = "active"
            subscription.current_period_start = now
            subscription.current_period_end = now + SUBSCRIPTION_PERIOD
            await db.flush()
    except SQLAlchemyError:
        logger.exception("Plan upgrade failed for user %s -> %s", user.id, plan_tier)
        return ServiceResult.failure(
            service_error(ErrorCode.INTERNAL, "internal_error", user.locale)
        )

    logger.info(
        "Plan upgraded: user=%s tier=%s wallet=%s card=%s",
        user.id, plan_tier, wallet_amount, card_amount,
    )
    if notifier is not None:
        notifier.trigger(
            "plan_upgraded",
            build_plan_upgraded_event(user.id, plan_tier, price, settings.currency),
        )

    return ServiceResult.success(
        UpgradeReceipt(
            plan_tier=plan_tier,
            price=price,
            wallet_amount=wallet_amount,
            card_amount=card_amount,
            period_end=subscription.current_period_end,
        )
    )
