"""
Pydantic v2 schemas for job completion requests.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubmitCompletionRequest(BaseModel):
    gig_id: uuid.UUID
    description: str = Field(max_length=5000)
    attachments: list[str] = Field(default_factory=list)


class RejectCompletionRequest(BaseModel):
    reason: str = Field(max_length=2000)


class CompletionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    gig_id: uuid.UUID
    provider_id: uuid.UUID
    description: str
    attachments: list[str]
    status: str
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
