"""
Authentication API routes
=========================

Routes:
  POST /api/v1/auth/register  -- create a new account
  POST /api/v1/auth/login     -- authenticate with email & password
  POST /api/v1/auth/refresh   -- exchange a refresh token for a new pair
  GET  /api/v1/auth/me        -- get the currently authenticated user
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from gighub.api.deps import CurrentUser, DBSession
from gighub.api.schemas.auth import (
    AuthData,
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokensData,
    TokensOut,
    TokensResponse,
    UserData,
    UserOut,
    UserResponse,
)
from gighub.models import User
from gighub.services import auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _user_to_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        phone=user.phone,
        first_name=user.first_name,
        last_name=user.last_name,
        role=auth_service.get_role_string(user),
        plan_tier=user.plan_tier,
        locale=user.locale,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
    )


def _auth_response(user: User, tokens: dict, message: str) -> AuthResponse:
    return AuthResponse(
        data=AuthData(user=_user_to_out(user), tokens=TokensOut(**tokens)),
        message=message,
    )


# ---------------------------------------------------------------------------
# POST /auth/register
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=AuthResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
async def register(body: RegisterRequest, db: DBSession) -> AuthResponse:
    try:
        user, tokens = await auth_service.register(
            db=db,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            phone=body.phone,
            locale=body.locale,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    return _auth_response(user, tokens, "Account created successfully.")


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------

@router.post(
    "/login",
    response_model=AuthResponse,
    response_model_by_alias=True,
    summary="Authenticate with email and password",
)
async def login(body: LoginRequest, db: DBSession) -> AuthResponse:
    try:
        user, tokens = await auth_service.login(db=db, email=body.email, password=body.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))

    return _auth_response(user, tokens, "Logged in successfully.")


# ---------------------------------------------------------------------------
# POST /auth/refresh
# ---------------------------------------------------------------------------

@router.post(
    "/refresh",
    response_model=TokensResponse,
    response_model_by_alias=True,
    summary="Exchange a refresh token for new tokens",
)
async def refresh(body: RefreshRequest, db: DBSession) -> TokensResponse:
    try:
        tokens = await auth_service.refresh_tokens(db, body.refresh_token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))

    return TokensResponse(
        data=TokensData(tokens=TokensOut(**tokens)),
        message="Tokens refreshed successfully.",
    )


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    response_model=UserResponse,
    response_model_by_alias=True,
    summary="Get current user profile",
)
async def me(current_user: CurrentUser) -> UserResponse:
    return UserResponse(data=UserData(user=_user_to_out(current_user)))
