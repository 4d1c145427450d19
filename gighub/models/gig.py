"""
SQLAlchemy model for gigs -- the unit of work clients publish and providers
propose against.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class GigStatus(str, enum.Enum):
    PENDING = "pending"            # awaiting moderation
    APPROVED = "approved"          # visible, open for proposals
    REJECTED = "rejected"          # refused by moderation
    IN_PROGRESS = "in_progress"    # a proposal was accepted
    COMPLETED = "completed"        # client approved the completion
    CANCELLED = "cancelled"


class Gig(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "gigs"

    author_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Client's budget, and the price fixed by the accepted proposal
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    agreed_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    status: Mapped[GigStatus] = mapped_column(
        Enum(GigStatus, name="gig_status", create_type=False),
        nullable=False,
        default=GigStatus.PENDING,
        server_default="PENDING",
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def payable_amount(self) -> Decimal:
        return self.agreed_price if self.agreed_price is not None else self.price

    def __repr__(self) -> str:
        return f"<Gig(id={self.id}, title={self.title!r}, status={self.status})>"
