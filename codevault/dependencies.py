"""
CodeVault Backend — Request Dependencies
==========================================

What:  FastAPI dependencies that resolve the caller and the app's services.
Why:   Keeps token parsing and "who is calling" out of every route body.
How:   HTTPBearer(auto_error=False) extracts the header without raising;
       the dependencies below decide between 401 and anonymous access.

    require_user   → User or AuthError (401)   : mutations, own listings, /me
    optional_user  → User or None               : public reads, copy
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from codevault.database import get_db_session
from codevault.exceptions import AuthError
from codevault.models.user import User
from codevault.services.auth_service import AuthService
from codevault.services.snippet_service import SnippetService
from codevault.services.token_service import TokenService

bearer_scheme = HTTPBearer(auto_error=False, description="JWT issued by /api/auth/login")


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_snippet_service(request: Request) -> SnippetService:
    return request.app.state.snippet_service


async def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession,
    tokens: TokenService,
    auth: AuthService,
) -> Optional[User]:
    if credentials is None:
        return None
    user_id = tokens.verify(credentials.credentials)
    if user_id is None:
        raise AuthError("Invalid or expired token")
    user = await auth.get_user(db, user_id)
    if user is None:
        # Valid signature, but the account is gone
        raise AuthError("Invalid or expired token")
    return user


async def optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    """
    The caller if a token was sent, else None.

    A token that IS sent but fails verification is still a 401: a client
    with a stale token should find out, not silently browse anonymously.
    """
    return await _resolve_user(credentials, db, tokens, auth)


async def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """The caller; AuthError (401) when no valid bearer token was sent."""
    user = await _resolve_user(credentials, db, tokens, auth)
    if user is None:
        raise AuthError("Authentication required")
    return user
