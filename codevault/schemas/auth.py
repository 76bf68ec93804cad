"""
CodeVault Backend — Auth & Profile Schemas
============================================

What:  Request/response models for registration, login and the profile.
Security:
    No schema here has a password_hash field, so the digest can never be
    serialized even if a User ORM object is passed straight through.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from codevault.schemas.common import CamelModel

USERNAME_PATTERN = r"^[A-Za-z0-9_.\-]+$"


class RegisterRequest(CamelModel):
    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=8, max_length=128)
    display_name: str = Field(default="", max_length=100)


class LoginRequest(CamelModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=128)


class AuthResponse(CamelModel):
    """
    What:  Returned by register and login.
    Who:   Frontend stores `token` and sends it as a bearer credential.
    """
    token: str = Field(description="Signed bearer token (JWT)")
    user_id: int
    username: str
    display_name: str
    expires_at: datetime = Field(description="Token expiry (UTC)")


class UserResponse(CamelModel):
    """Public profile of a user (GET/PUT /api/auth/me)."""
    id: int
    username: str
    display_name: str
    bio: Optional[str] = None
    created_at: datetime
    last_login_at: datetime


class ProfileUpdateRequest(CamelModel):
    """Fields left out of the request body are not changed."""
    display_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=1000)
