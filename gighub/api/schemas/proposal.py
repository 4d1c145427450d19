"""
Pydantic v2 schemas for the proposal workflow.

Covers:
- Proposal and counter-proposal submission
- Owner rejection with an optional reason
- Proposal templates
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class CreateProposalRequest(BaseModel):
    """Request body for a proposal. Business rules (positive price and
    timeline, at least one deliverable) are checked by the service."""

    gig_id: uuid.UUID
    proposal_title: str = Field(max_length=200)
    proposal_description: str = Field(max_length=10000)
    proposed_price: Decimal
    timeline_days: int
    deliverables: list[str] = Field(default_factory=list)
    terms_conditions: Optional[str] = None
    attachments: list[Any] = Field(default_factory=list)
    expires_at: Optional[datetime] = None


class CounterProposalRequest(CreateProposalRequest):
    parent_proposal_id: uuid.UUID


class RejectProposalRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class ProposalTemplateRequest(BaseModel):
    name: str = Field(max_length=100)
    title: str = Field(max_length=200)
    description: str
    deliverables: list[str] = Field(default_factory=list)
    terms_conditions: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    is_default: bool = False


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ProposalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    gig_id: uuid.UUID
    responder_id: uuid.UUID
    proposal_title: str
    proposal_description: str
    proposed_price: Decimal
    timeline_days: int
    deliverables: list[str]
    terms_conditions: Optional[str] = None
    expires_at: Optional[datetime] = None
    status: str
    response_message: Optional[str] = None
    responded_at: Optional[datetime] = None
    is_counter_proposal: bool
    parent_proposal_id: Optional[uuid.UUID] = None
    created_at: datetime


class ProposalTemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    title: str
    description: str
    deliverables: list[str]
    terms_conditions: Optional[str] = None
    category: Optional[str] = None
    is_default: bool
