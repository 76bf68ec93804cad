"""
CodeVault Backend — Bearer Token Issuer/Verifier
==================================================

What:  Issues signed, time-limited JWTs for users and verifies them.
Why:   Stateless session credential: every authenticated request carries
       `Authorization: Bearer <token>` and no server-side session is stored.
How:   PyJWT, HS256 with the shared JWT_SECRET (≥32 chars, checked at startup).

Claims:
    sub:      str(user.id)  (RFC 7519 requires a string subject)
    username: user.username (informational; never trusted for authorization)
    iat:      issue time
    exp:      iat + JWT_EXPIRATION_DAYS

Verification fails (returns None) when:
    - signature does not match the secret
    - token expired, or carries no exp at all
    - token is malformed
    - sub is absent or not a decimal integer
    Issuer/audience are not checked.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from codevault.config import Settings
from codevault.models.user import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenService:
    """
    Signs and checks bearer tokens for one secret/lifetime pair.

    Built once by create_app() from Settings and shared via app.state.
    """

    def __init__(self, secret: str, expiration_days: int):
        self._secret = secret
        self.lifetime = timedelta(days=expiration_days)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(settings.jwt_secret, settings.jwt_expiration_days)

    def issue(self, user: User, now: Optional[datetime] = None) -> IssuedToken:
        """
        Create a token for `user`.

        Args:
            user: persisted User (id must be assigned)
            now:  issue time; defaults to the current UTC time. Tests pass a
                  past value to produce already-expired tokens.
        """
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + self.lifetime
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token: str) -> Optional[int]:
        """
        Validate `token` and return the user id it names, or None.

        Never raises for a bad token; the caller decides how to respond.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired bearer token")
            return None
        except jwt.PyJWTError as e:
            logger.info("Rejected bearer token: %s", type(e).__name__)
            return None

        sub = payload.get("sub")
        if not isinstance(sub, str) or not (sub.isascii() and sub.isdigit()):
            logger.info("Rejected bearer token with non-numeric subject")
            return None
        return int(sub)
