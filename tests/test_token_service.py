"""
CodeVault Backend — Token Service Unit Tests
==============================================

What:  Issue/verify behaviour of bearer tokens.
How:   Real PyJWT encoding against a fixed secret; no database.

What we test:
    ✅ A fresh token verifies to the user id it was issued for
    ✅ Expired, tampered, foreign-secret and garbage tokens are rejected
    ✅ Tokens without exp or with a non-numeric subject are rejected
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from codevault.models.user import User
from codevault.services.token_service import ALGORITHM, TokenService

SECRET = "unit-test-secret-with-at-least-thirty-two-chars"


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(SECRET, expiration_days=7)


@pytest.fixture
def user() -> User:
    return User(id=42, username="alice", password_hash="x", display_name="Alice")


class TestIssue:

    def test_round_trip(self, tokens, user):
        """A fresh token verifies to its user id."""
        issued = tokens.issue(user)
        assert tokens.verify(issued.token) == 42

    def test_expiry_is_lifetime_after_issue(self, tokens, user):
        """exp is issue time plus the configured lifetime."""
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        issued = tokens.issue(user, now=now)
        assert issued.expires_at == now + timedelta(days=7)

    def test_claims(self, tokens, user):
        """The payload carries sub, username, iat and exp."""
        issued = tokens.issue(user)
        payload = jwt.decode(issued.token, SECRET, algorithms=[ALGORITHM])
        assert payload["sub"] == "42"
        assert payload["username"] == "alice"
        assert payload["exp"] > payload["iat"]


class TestVerifyRejects:

    def test_expired(self, tokens, user):
        """A token past its exp is rejected."""
        issued = tokens.issue(user, now=datetime.now(timezone.utc) - timedelta(days=8))
        assert tokens.verify(issued.token) is None

    def test_tampered(self, tokens, user):
        """A modified signature is rejected."""
        token = tokens.issue(user).token
        header, payload, signature = token.split(".")
        flipped = "A" if signature[0] != "A" else "B"
        assert tokens.verify(f"{header}.{payload}.{flipped}{signature[1:]}") is None

    def test_other_secret(self, user):
        """A token signed with another secret is rejected."""
        foreign = TokenService("another-secret-that-is-also-long-enough!!", 7)
        token = foreign.issue(user).token
        assert TokenService(SECRET, 7).verify(token) is None

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c"])
    def test_garbage(self, tokens, garbage):
        """Non-JWT input is rejected."""
        assert tokens.verify(garbage) is None

    def test_missing_expiry(self, tokens):
        """A token without exp is rejected."""
        token = jwt.encode({"sub": "1"}, SECRET, algorithm=ALGORITHM)
        assert tokens.verify(token) is None

    def test_missing_subject(self, tokens):
        """A token without sub is rejected."""
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode({"exp": exp}, SECRET, algorithm=ALGORITHM)
        assert tokens.verify(token) is None

    def test_non_numeric_subject(self, tokens):
        """A non-numeric sub is rejected."""
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode({"sub": "alice", "exp": exp}, SECRET, algorithm=ALGORITHM)
        assert tokens.verify(token) is None
