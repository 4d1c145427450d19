"""
Pydantic v2 schemas for conversations and messages.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    gig_id: uuid.UUID
    gig_title: str
    client_id: uuid.UUID
    provider_id: uuid.UUID
    counterpart_id: uuid.UUID
    counterpart_name: Optional[str] = None
    status: str
    last_message_at: Optional[datetime] = None
    unread_count: int


class SendMessageRequest(BaseModel):
    content: str = Field(max_length=4000)


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    message_type: str
    read_at: Optional[datetime] = None
    created_at: datetime
