"""
Authentication service for the GigHub platform.

Handles user registration, login and JWT token management. Uses bcrypt for
password hashing and PyJWT for token generation/verification.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.core.config import settings
from gighub.models.user import User, UserStatus

logger = logging.getLogger(__name__)

_INACTIVE = (UserStatus.BANNED, UserStatus.SUSPENDED, UserStatus.DEACTIVATED)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a plaintext password using bcrypt."""
    # bcrypt only looks at the first 72 bytes
    pw_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(pw_bytes, hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# JWT token generation
# ---------------------------------------------------------------------------


def _encode(user_id: uuid.UUID, token_type: str, lifetime: timedelta) -> tuple[str, datetime]:
    now = datetime.now(timezone.utc)
    expires_at = now + lifetime
    payload = {
        "sub": str(user_id),
        "type": token_type,
        "exp": expires_at,
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires_at


def create_access_token(user_id: uuid.UUID) -> tuple[str, datetime]:
    """Create a short-lived access token.

    Returns:
        Tuple of (token_string, expiration_datetime).
    """
    return _encode(user_id, "access", timedelta(minutes=settings.access_token_expire_minutes))


def create_refresh_token(user_id: uuid.UUID) -> tuple[str, datetime]:
    return _encode(user_id, "refresh", timedelta(days=settings.refresh_token_expire_days))


def create_tokens(user_id: uuid.UUID) -> dict:
    """Create both access and refresh tokens for a user."""
    access_token, access_expires = create_access_token(user_id)
    refresh_token, _ = create_refresh_token(user_id)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_at": access_expires,
    }


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is otherwise invalid.
    """
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# User role helpers
# ---------------------------------------------------------------------------

def _parse_role(role: str) -> tuple[bool, bool]:
    """Convert a role string to (role_client, role_provider) booleans.

    Valid values: 'client', 'provider', 'both'.
    """
    role_lower = role.lower().strip()
    if role_lower == "client":
        return True, False
    elif role_lower == "provider":
        return False, True
    elif role_lower == "both":
        return True, True
    else:
        raise ValueError(f"Invalid role: {role}. Must be 'client', 'provider', or 'both'.")


def get_role_string(user: User) -> str:
    """Convert user role booleans back to a role string for API responses."""
    if user.role_client and user.role_provider:
        return "both"
    elif user.role_provider:
        return "provider"
    else:
        return "client"


# ---------------------------------------------------------------------------
# Service functions
# ---------------------------------------------------------------------------

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower().strip()))
    return result.scalars().first()


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalars().first()


async def register(
    db: AsyncSession,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str = "client",
    phone: Optional[str] = None,
    locale: Optional[str] = None,
) -> tuple[User, dict]:
    """Register a new user on the default plan.

    Raises:
        ValueError: If email is already registered or role is invalid.
    """
    email = email.lower().strip()

    existing = await get_user_by_email(db, email)
    if existing is not None:
        raise ValueError("A user with this email address already exists.")

    role_client, role_provider = _parse_role(role)

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        locale=locale,
        role_client=role_client,
        role_provider=role_provider,
        role_admin=False,
        plan_tier=settings.default_plan_tier,
        status=UserStatus.ACTIVE,
    )
    db.add(user)
    await db.flush()

    logger.info("User registered: id=%s role=%s", user.id, role)
    return user, create_tokens(user.id)


async def login(db: AsyncSession, email: str, password: str) -> tuple[User, dict]:
    """Authenticate a user with email and password.

    Raises:
        ValueError: If credentials are invalid or account is not active.
    """
    user = await get_user_by_email(db, email)
    if user is None or user.password_hash is None:
        raise ValueError("Invalid email or password.")
    if not verify_password(password, user.password_hash):
        raise ValueError("Invalid email or password.")

    if user.status == UserStatus.BANNED:
        raise ValueError("This account has been banned.")
    if user.status == UserStatus.SUSPENDED:
        raise ValueError("This account is currently suspended.")
    if user.status == UserStatus.DEACTIVATED:
        raise ValueError("This account has been deactivated.")

    user.last_login_at = datetime.now(timezone.utc)
    await db.flush()

    return user, create_tokens(user.id)


async def _user_from_token(db: AsyncSession, token: str, token_type: str) -> User:
    """Decode a JWT of ``token_type`` and return its active subject.

    Raises:
        ValueError: If the token is invalid, expired, of the wrong type, or
            its user is missing or inactive.
    """
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise ValueError(f"{token_type.capitalize()} token has expired.")
    except jwt.InvalidTokenError:
        raise ValueError(f"Invalid {token_type} token.")

    if payload.get("type") != token_type:
        raise ValueError(f"Invalid token type. Expected: {token_type}.")

    try:
        user_id = uuid.UUID(payload.get("sub"))
    except (ValueError, TypeError, AttributeError):
        raise ValueError("Invalid token: malformed subject.")

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise ValueError("User not found.")
    if user.status in _INACTIVE:
        raise ValueError("Account is no longer active.")

    return user


async def get_current_user(db: AsyncSession, token: str) -> User:
    """Return the user an access token was issued to.

    Raises:
        ValueError: If the token is invalid, expired, or user not found.
    """
    return await _user_from_token(db, token, "access")


async def refresh_tokens(db: AsyncSession, refresh_token: str) -> dict:
    """Exchange a refresh token for a new access/refresh pair.

    Raises:
        ValueError: If the refresh token is invalid or expired, or the
            account is no longer active.
    """
    user = await _user_from_token(db, refresh_token, "refresh")
    logger.info("Tokens refreshed for user %s", user.id)
    return create_tokens(user.id)
