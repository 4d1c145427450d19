"""
Pydantic v2 schemas for wallets and withdrawals.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: str
    category: str
    amount: Decimal
    currency: str
    status: str
    description: Optional[str] = None
    reference_id: Optional[uuid.UUID] = None
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias="metadata_json"
    )
    created_at: datetime


class WalletOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    user_type: str
    balance: Decimal
    currency: str
    transactions: list[TransactionOut]


class WithdrawRequest(BaseModel):
    amount: Decimal
    user_type: str = Field(default="provider", pattern=r"^(client|provider)$")
