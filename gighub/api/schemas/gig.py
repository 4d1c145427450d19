"""
Pydantic v2 schemas for gigs, moderation and the contact gate.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from gighub.models import GigStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class CreateGigRequest(BaseModel):
    title: str = Field(max_length=200)
    description: str = Field(max_length=10000)
    price: Decimal
    category: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=255)


class ModerateGigRequest(BaseModel):
    approve: bool
    reason: Optional[str] = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class GigOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    author_id: uuid.UUID
    provider_id: Optional[uuid.UUID] = None
    title: str
    description: str
    category: Optional[str] = None
    location: Optional[str] = None
    price: Decimal
    agreed_price: Optional[Decimal] = None
    status: GigStatus
    rejection_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class ContactInfoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None


class ContactAccessOut(BaseModel):
    can_view: bool
    reason: str
    remaining: int


class ContactViewOut(BaseModel):
    contact_info: ContactInfoOut
    already_viewed: bool


class GigResponseOut(BaseModel):
    conversation_id: uuid.UUID
    already_responded: bool
