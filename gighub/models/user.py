"""
SQLAlchemy model for the users table (public profiles).
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEACTIVATED = "deactivated"
    BANNED = "banned"


class UserType(str, enum.Enum):
    """Role context used for plan lookup and wallet scoping."""
    CLIENT = "client"
    PROVIDER = "provider"
    BOTH = "both"


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    # Authentication
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    locale: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # Roles
    role_client: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    role_provider: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Monetization
    plan_tier: Mapped[str] = mapped_column(
        String(50), nullable=False, default="free", server_default="free"
    )

    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status", create_type=False),
        nullable=False,
        default=UserStatus.ACTIVE,
        server_default="ACTIVE",
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def full_name(self) -> str:
        return self.display_name or f"{self.first_name} {self.last_name}".strip()

    @property
    def user_type(self) -> UserType:
        return UserType.PROVIDER if self.role_provider else UserType.CLIENT

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, plan={self.plan_tier})>"
