"""
Pydantic v2 schemas for the Notifications API.

Request/response schemas for device registration, notification history,
read status and notification preferences.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gighub.models import DevicePlatform


# ---------------------------------------------------------------------------
# Device registration
# ---------------------------------------------------------------------------

class DeviceRegisterRequest(BaseModel):
    """Request body for registering a device token for push notifications."""

    device_token: str = Field(
        min_length=1,
        max_length=512,
        description="FCM registration token from the device",
    )
    platform: str = Field(description="Device platform: 'ios', 'android' or 'web'")
    app_version: Optional[str] = Field(default=None, max_length=50)

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"ios", "android", "web"}:
            raise ValueError("Platform must be 'ios', 'android' or 'web'")
        return v_lower


class DeviceRegisterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    device_token: str
    platform: DevicePlatform
    app_version: Optional[str] = None
    is_active: bool
    created_at: datetime


# ---------------------------------------------------------------------------
# Notification history
# ---------------------------------------------------------------------------

class NotificationOut(BaseModel):
    """Single notification in the history list."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    body: str
    notification_type: str
    data_json: Optional[dict[str, Any]] = None
    read: bool
    read_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Notification preferences
# ---------------------------------------------------------------------------

class NotificationPreferencesRequest(BaseModel):
    """Fields left out keep their current value."""

    gig_updates: Optional[bool] = None
    proposal_updates: Optional[bool] = None
    payment_updates: Optional[bool] = None
    marketing: Optional[bool] = None


class NotificationPreferencesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    gig_updates: bool
    proposal_updates: bool
    payment_updates: bool
    marketing: bool
