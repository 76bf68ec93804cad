"""
CodeVault Backend — Auth Route Handlers
=========================================

What:  POST /api/auth/register, POST /api/auth/login, GET/PUT /api/auth/me.
How:   Validates the body with Pydantic, delegates to AuthService, shapes
       the AuthResponse / UserResponse.

Error responses (global exception handlers):
    400: schema/business validation, "Username already exists"
    401: bad credentials, missing/invalid token
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from codevault.database import get_db_session
from codevault.dependencies import get_auth_service, require_user
from codevault.models.user import User
from codevault.schemas.auth import (
    AuthResponse,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserResponse,
)
from codevault.schemas.common import ErrorResponse
from codevault.services.auth_service import AuthService
from codevault.services.token_service import IssuedToken

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _auth_response(user: User, issued: IssuedToken) -> AuthResponse:
    return AuthResponse(
        token=issued.token,
        user_id=user.id,
        username=user.username,
        display_name=user.display_name,
        expires_at=issued.expires_at,
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid input or username taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Register and return a bearer token, so the client is signed in immediately."""
    user, issued = await auth.register(
        db,
        username=body.username,
        password=body.password,
        display_name=body.display_name,
    )
    return _auth_response(user, issued)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"description": "Invalid username or password", "model": ErrorResponse},
    },
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user, issued = await auth.login(db, username=body.username, password=body.password)
    return _auth_response(user, issued)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Current user's profile",
)
async def me(user: User = Depends(require_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.put(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Update display name and bio",
)
async def update_me(
    body: ProfileUpdateRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await auth.update_profile(
        db,
        user,
        display_name=body.display_name,
        bio=body.bio,
    )
    return UserResponse.model_validate(user)
