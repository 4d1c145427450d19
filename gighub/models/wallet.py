"""
SQLAlchemy model for wallet transactions.

The wallet balance is never stored: it is recomputed from the ledger as the
sum of credit amounts minus the sum of debit amounts. Rows flagged
``is_internal`` in their metadata take part in the balance but are hidden
from the user-facing history.
"""

import enum
import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TransactionType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class TransactionCategory(str, enum.Enum):
    JOB_PAYMENT = "job_payment"
    PLAN_UPGRADE = "plan_upgrade"
    CARD_TOPUP = "card_topup"
    WITHDRAWAL = "withdrawal"
    ADJUSTMENT = "adjustment"


class Transaction(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_type", "user_id", "user_type"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Wallet context: the same user can hold a client and a provider wallet
    user_type: Mapped[str] = mapped_column(String(20), nullable=False)

    type: Mapped[str] = mapped_column(String(10), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.COMPLETED.value
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )

    @property
    def is_internal(self) -> bool:
        return bool((self.metadata_json or {}).get("is_internal"))

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, user={self.user_id}, "
            f"type={self.type}, amount={self.amount})>"
        )
