"""
Pydantic v2 schemas for authentication API endpoints.

Response models use camelCase field names for the mobile app. This is
achieved via Pydantic's ``alias_generator`` together with
``populate_by_name=True`` so both snake_case and camelCase are accepted for
construction.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _to_camel(name: str) -> str:
    parts = name.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


_CAMEL = ConfigDict(alias_generator=_to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = _CAMEL

    email: str = Field(..., description="User email address")
    password: str = Field(
        ..., min_length=8, max_length=128, description="Password (min 8 characters)"
    )
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    locale: Optional[str] = Field(None, max_length=10, description="pt or en")
    role: str = Field(
        "client",
        pattern=r"^(client|provider|both)$",
        description="User role: client, provider, or both",
    )


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = _CAMEL

    email: str
    password: str


class RefreshRequest(BaseModel):
    """Request body for POST /auth/refresh."""

    model_config = _CAMEL

    refresh_token: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserOut(BaseModel):
    """Public user representation returned to clients."""

    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: uuid.UUID
    email: str
    phone: Optional[str] = None
    first_name: str
    last_name: str
    role: str = Field(description="client, provider, or both")
    plan_tier: str
    locale: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime


class TokensOut(BaseModel):
    """JWT token pair returned after authentication."""

    model_config = _CAMEL

    access_token: str
    refresh_token: str
    expires_at: datetime


class AuthData(BaseModel):
    model_config = _CAMEL

    user: UserOut
    tokens: TokensOut


class AuthResponse(BaseModel):
    """Response wrapper for login and register endpoints."""

    model_config = _CAMEL

    data: AuthData
    message: Optional[str] = None


class UserData(BaseModel):
    model_config = _CAMEL

    user: UserOut


class UserResponse(BaseModel):
    """Response wrapper for GET /auth/me."""

    model_config = _CAMEL

    data: UserData
    message: Optional[str] = None


class TokensData(BaseModel):
    model_config = _CAMEL

    tokens: TokensOut


class TokensResponse(BaseModel):
    """Response wrapper for POST /auth/refresh."""

    model_config = _CAMEL

    data: TokensData
    message: Optional[str] = None
