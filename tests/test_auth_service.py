"""
CodeVault Backend — Auth Service Tests
========================================

What:  Registration, login and profile updates against a real (SQLite) session.

What we test:
    ✅ Register stores a salted digest and returns a token for the new id
    ✅ Duplicate usernames are rejected and the first account is untouched
    ✅ The unique index catches a registration that slips past the lookup
    ✅ Login succeeds only with the right password; failures share a message
    ✅ Profile updates
"""

import asyncio
import threading
import time
from unittest.mock import AsyncMock, patch

import pytest
from argon2 import PasswordHasher as Argon2Hasher

from codevault.exceptions import AuthError, ConflictError, ValidationError
from codevault.services.auth_service import INVALID_CREDENTIALS, AuthService
from codevault.services.password_service import PasswordHasher


@pytest.fixture
def auth_service(token_service) -> AuthService:
    fast = PasswordHasher(Argon2Hasher(time_cost=1, memory_cost=8, parallelism=1))
    return AuthService(token_service, hasher=fast)


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_returns_user_and_token(self, db_session, auth_service, token_service):
        """Register stores a digest and returns a token for the new id."""
        user, issued = await auth_service.register(db_session, "alice", "pw12345678", "Alice")

        assert user.id is not None
        assert user.username == "alice"
        assert user.display_name == "Alice"
        assert user.password_hash != "pw12345678"
        assert token_service.verify(issued.token) == user.id

    @pytest.mark.asyncio
    async def test_display_name_defaults_to_username(self, db_session, auth_service):
        """An omitted display name falls back to the username."""
        user, _ = await auth_service.register(db_session, "bob", "pw12345678")
        assert user.display_name == "bob"

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, db_session, auth_service):
        """A second registration of a name fails and leaves the first intact."""
        first, _ = await auth_service.register(db_session, "alice", "pw12345678", "Alice")
        original_digest = first.password_hash

        with pytest.raises(ConflictError, match="Username already exists"):
            await auth_service.register(db_session, "alice", "another-password", "Imposter")

        stored = await auth_service.find_by_username(db_session, "alice")
        assert stored.id == first.id
        assert stored.display_name == "Alice"
        assert stored.password_hash == original_digest

    @pytest.mark.asyncio
    async def test_usernames_are_case_sensitive(self, db_session, auth_service):
        """Names differing only in case are distinct accounts."""
        await auth_service.register(db_session, "alice", "pw12345678")
        other, _ = await auth_service.register(db_session, "Alice", "pw12345678")
        assert other.username == "Alice"

    @pytest.mark.asyncio
    async def test_unique_index_catches_race(self, db_session, auth_service):
        """The unique index turns a lost race into ConflictError."""
        await auth_service.register(db_session, "alice", "pw12345678")

        # Simulate a concurrent registration that passed the lookup first
        with patch.object(auth_service, "find_by_username", AsyncMock(return_value=None)):
            with pytest.raises(ConflictError):
                await auth_service.register(db_session, "alice", "pw12345678")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username,password", [("", "pw12345678"), ("   ", "pw12345678"), ("carol", "")])
    async def test_blank_credentials_rejected(self, db_session, auth_service, username, password):
        """Blank usernames and passwords are validation errors."""
        with pytest.raises(ValidationError):
            await auth_service.register(db_session, username, password)


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, db_session, auth_service, token_service):
        """Login returns the registered user and a matching token."""
        registered, _ = await auth_service.register(db_session, "alice", "pw12345678")
        before = registered.last_login_at

        user, issued = await auth_service.login(db_session, "alice", "pw12345678")

        assert user.id == registered.id
        assert token_service.verify(issued.token) == user.id
        assert user.last_login_at >= before

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, auth_service):
        """A wrong password raises AuthError with the shared message."""
        await auth_service.register(db_session, "alice", "pw12345678")
        with pytest.raises(AuthError) as exc_info:
            await auth_service.login(db_session, "alice", "wrong-password")
        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_unknown_user_same_message(self, db_session, auth_service):
        """An unknown username gets the same message as a wrong password."""
        with pytest.raises(AuthError) as exc_info:
            await auth_service.login(db_session, "nobody", "pw12345678")
        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_outdated_digest_upgraded_on_login(self, db_session, token_service):
        """Login rewrites a digest made with weaker parameters."""
        weak = AuthService(token_service, PasswordHasher(Argon2Hasher(time_cost=1, memory_cost=8, parallelism=1)))
        user, _ = await weak.register(db_session, "alice", "pw12345678")
        old_digest = user.password_hash

        stronger = AuthService(token_service, PasswordHasher(Argon2Hasher(time_cost=2, memory_cost=8, parallelism=1)))
        await stronger.login(db_session, "alice", "pw12345678")

        assert user.password_hash != old_digest
        assert "t=2" in user.password_hash


class TestProfile:

    @pytest.mark.asyncio
    async def test_update_profile(self, db_session, auth_service):
        """Display name and bio are persisted."""
        user, _ = await auth_service.register(db_session, "alice", "pw12345678")

        await auth_service.update_profile(db_session, user, display_name="Alice A.", bio="Backend dev")

        fetched = await auth_service.get_user(db_session, user.id)
        assert fetched.display_name == "Alice A."
        assert fetched.bio == "Backend dev"

    @pytest.mark.asyncio
    async def test_none_leaves_fields_alone(self, db_session, auth_service):
        """None means leave the field unchanged."""
        user, _ = await auth_service.register(db_session, "alice", "pw12345678", "Alice")
        await auth_service.update_profile(db_session, user, bio="hi")
        await auth_service.update_profile(db_session, user)
        assert user.display_name == "Alice"
        assert user.bio == "hi"

    @pytest.mark.asyncio
    async def test_empty_values_reset(self, db_session, auth_service):
        """Empty strings reset the display name and clear the bio."""
        user, _ = await auth_service.register(db_session, "alice", "pw12345678", "Alice")
        await auth_service.update_profile(db_session, user, display_name="", bio="")
        assert user.display_name == "alice"
        assert user.bio is None

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, db_session, auth_service):
        """Looking up a missing id returns None."""
        assert await auth_service.get_user(db_session, 999) is None


class ThreadRecordingHasher(PasswordHasher):
    """Fast hasher that remembers which thread each digest operation ran on."""

    def __init__(self):
        super().__init__(Argon2Hasher(time_cost=1, memory_cost=8, parallelism=1))
        self.threads = []

    def hash(self, password):
        self.threads.append(threading.get_ident())
        return super().hash(password)

    def verify(self, password, digest):
        self.threads.append(threading.get_ident())
        return super().verify(password, digest)


class SlowHasher(ThreadRecordingHasher):
    """Stands in for expensive production parameters."""

    def hash(self, password):
        time.sleep(0.3)
        return super().hash(password)


class TestEventLoopOffload:

    @pytest.mark.asyncio
    async def test_digest_work_runs_off_the_loop_thread(self, db_session, token_service):
        """register, login and the unknown-user path all hash in a worker thread."""
        hasher = ThreadRecordingHasher()
        service = AuthService(token_service, hasher=hasher)

        await service.register(db_session, "alice", "pw12345678")
        await service.login(db_session, "alice", "pw12345678")
        with pytest.raises(AuthError):
            await service.login(db_session, "nobody", "pw12345678")

        loop_thread = threading.get_ident()
        assert len(hasher.threads) >= 3
        assert loop_thread not in hasher.threads

    @pytest.mark.asyncio
    async def test_slow_hash_does_not_stall_other_tasks(self, db_session, token_service):
        """A ticker keeps running while a registration is hashing."""
        service = AuthService(token_service, hasher=SlowHasher())
        gaps = []

        async def ticker():
            last = time.perf_counter()
            for _ in range(20):
                await asyncio.sleep(0.01)
                now = time.perf_counter()
                gaps.append(now - last)
                last = now

        await asyncio.gather(
            service.register(db_session, "alice", "pw12345678"),
            ticker(),
        )

        assert max(gaps) < 0.2
