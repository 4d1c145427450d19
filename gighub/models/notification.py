"""
SQLAlchemy models for device_tokens, notifications, and notification_preferences.
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DevicePlatform(str, enum.Enum):
    """Supported mobile platforms for push notifications."""
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


class NotificationType(str, enum.Enum):
    """Classification of notification events.

    The value doubles as the trigger name passed to the notification
    dispatcher, so every trigger the platform emits has a member here.
    """
    RESPONSE_RECEIVED = "response_received"
    RESPONSE_ACCEPTED = "response_accepted"
    RESPONSE_REJECTED = "response_rejected"
    CONTACT_VIEWED = "contact_viewed"
    JOB_COMPLETION_SUBMITTED = "job_completion_submitted"
    JOB_APPROVED = "job_approved"
    JOB_REJECTED = "job_rejected"
    GIG_APPROVED = "gig_approved"
    GIG_REJECTED = "gig_rejected"
    GIG_COMPLETED = "gig_completed"
    PLAN_UPGRADED = "plan_upgraded"
    WITHDRAWAL_REQUESTED = "withdrawal_requested"
    SYSTEM = "system"


# ---------------------------------------------------------------------------
# DeviceToken
# ---------------------------------------------------------------------------

class DeviceToken(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Stores FCM device tokens for each user/device pair.

    A single user can have multiple active tokens. Tokens are deactivated
    when FCM reports them as invalid.
    """
    __tablename__ = "device_tokens"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    device_token: Mapped[str] = mapped_column(String(512), nullable=False)
    platform: Mapped[DevicePlatform] = mapped_column(
        Enum(DevicePlatform, name="device_platform", create_type=False),
        nullable=False,
    )
    app_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )

    __table_args__ = (
        Index("ix_device_tokens_user_id", "user_id"),
        Index(
            "uq_device_tokens_user_token",
            "user_id",
            "device_token",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<DeviceToken(id={self.id}, user_id={self.user_id}, "
            f"platform={self.platform}, active={self.is_active})>"
        )


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------

class Notification(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Persistent in-app notification record.

    Stored before any push attempt so the notification centre stays complete
    even when the device is offline or push is disabled.
    """
    __tablename__ = "notifications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    data_json: Mapped[Optional[Any]] = mapped_column(JSONB, nullable=True)
    read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_notifications_user_unread", "user_id", "read"),
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, user_id={self.user_id}, "
            f"type={self.notification_type}, read={self.read})>"
        )


# ---------------------------------------------------------------------------
# NotificationPreference
# ---------------------------------------------------------------------------

class NotificationPreference(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Per-user push preference toggles.

    At most one row per user. Preferences only gate push delivery; the
    in-app record is always written.
    """
    __tablename__ = "notification_preferences"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    gig_updates: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    proposal_updates: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    payment_updates: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    marketing: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationPreference(user_id={self.user_id}, "
            f"gig={self.gig_updates}, proposal={self.proposal_updates}, "
            f"pay={self.payment_updates})>"
        )
