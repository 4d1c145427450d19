"""
SQLAlchemy models for gig_responses (structured proposals) and
proposal_templates.

A counter-proposal is a row with ``is_counter_proposal`` set and
``parent_proposal_id`` pointing at an original (non-counter) proposal on the
same gig.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ProposalStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Proposal(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "gig_responses"

    gig_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("gigs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    responder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    proposal_title: Mapped[str] = mapped_column(String(200), nullable=False)
    proposal_description: Mapped[str] = mapped_column(Text, nullable=False)
    proposed_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    timeline_days: Mapped[int] = mapped_column(Integer, nullable=False)
    deliverables: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    terms_conditions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attachments: Mapped[list[Any]] = mapped_column(JSONB, nullable=False, default=list)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProposalStatus.PENDING.value,
        server_default="pending",
    )
    response_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Counter-offer chain (one level deep)
    is_counter_proposal: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    parent_proposal_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("gig_responses.id", ondelete="CASCADE"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Proposal(id={self.id}, gig={self.gig_id}, "
            f"price={self.proposed_price}, status={self.status})>"
        )


class ProposalTemplate(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Reusable proposal text saved by a provider."""

    __tablename__ = "proposal_templates"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    deliverables: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    terms_conditions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
