"""
CodeVault Backend — Auth Service (User Store)
===============================================

What:  Registration, login and profile maintenance.
Why:   Keeps credential rules out of the HTTP layer so they can be tested
       against a bare session.
How:   Composes PasswordHasher (digests) and TokenService (bearer tokens)
       over the users table.
Who:   Called by routes/auth.py and by the current-user dependency.

Registration Flow:
    ┌──────────┐    ┌──────────────┐    ┌────────────┐    ┌──────────────┐
    │ username │───▶│ exists?      │───▶│ hash pw    │───▶│ INSERT user  │──▶ token
    │ taken?   │    │ → Conflict   │    │ (argon2)   │    │ (unique idx) │
    └──────────┘    └──────────────┘    └────────────┘    └──────────────┘

    The SELECT gives the friendly error in the common case; the unique index
    catches the race where two registrations pass the SELECT together.

Login Flow:
    unknown user → dummy verify (same cost) → AuthError
    wrong password → AuthError (same message)
    success → last_login_at = now, digest upgraded if needed, token issued
"""

import asyncio
import logging
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from codevault.database import utcnow
from codevault.exceptions import AuthError, ConflictError, DatabaseError, ValidationError
from codevault.models.user import User
from codevault.services.password_service import PasswordHasher, password_hasher
from codevault.services.token_service import IssuedToken, TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


class AuthService:
    """
    Business logic for accounts.

    Stateless apart from its collaborators; create_app() builds one and
    stores it on app.state.
    """

    def __init__(self, tokens: TokenService, hasher: PasswordHasher = password_hasher):
        self.tokens = tokens
        self.hasher = hasher

    async def register(
        self,
        db: AsyncSession,
        username: str,
        password: str,
        display_name: str = "",
    ) -> Tuple[User, IssuedToken]:
        """
        Create an account and sign the new user in.

        Raises:
            ValidationError: blank username or password
            ConflictError:   username already exists (exact, case-sensitive)
        """
        if not username or not username.strip():
            raise ValidationError("Username is required", field="username")
        if not password:
            raise ValidationError("Password is required", field="password")

        if await self.find_by_username(db, username) is not None:
            raise ConflictError("Username already exists", context={"username": username})

        # Argon2 is CPU and memory heavy; keep it off the event loop
        password_hash = await asyncio.to_thread(self.hasher.hash, password)
        user = User(
            username=username,
            password_hash=password_hash,
            display_name=display_name.strip() or username,
        )
        db.add(user)
        try:
            # Flush assigns the id (needed for the token) and trips the unique index
            await db.flush()
        except IntegrityError:
            logger.info("Concurrent registration lost the race for username %s", username)
            raise ConflictError("Username already exists", context={"username": username})
        except SQLAlchemyError as e:
            logger.error("Database error registering %s: %s", username, str(e), exc_info=True)
            raise DatabaseError(context={"operation": "register"})

        logger.info("Registered user %s (id=%d)", user.username, user.id)
        return user, self.tokens.issue(user)

    async def login(
        self,
        db: AsyncSession,
        username: str,
        password: str,
    ) -> Tuple[User, IssuedToken]:
        """
        Check credentials and issue a token.

        Raises:
            AuthError: unknown username or wrong password (same message)
        """
        user = await self.find_by_username(db, username)
        if user is None:
            await asyncio.to_thread(self.hasher.dummy_verify)
            logger.info("Login failed: unknown username")
            raise AuthError(INVALID_CREDENTIALS)

        ok, new_digest = await asyncio.to_thread(self.hasher.verify, password, user.password_hash)
        if not ok:
            logger.info("Login failed for user id=%d: wrong password", user.id)
            raise AuthError(INVALID_CREDENTIALS)

        if new_digest:
            user.password_hash = new_digest
            logger.info("Upgraded password digest for user id=%d", user.id)
        user.last_login_at = utcnow()
        await db.flush()

        return user, self.tokens.issue(user)

    async def find_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_user(self, db: AsyncSession, user_id: int) -> Optional[User]:
        return await db.get(User, user_id)

    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        """
        Change display name and/or bio. None means "leave as is"; an empty
        bio clears it; an empty display name falls back to the username.
        """
        if display_name is not None:
            user.display_name = display_name.strip() or user.username
        if bio is not None:
            user.bio = bio.strip() or None
        await db.flush()
        return user
