"""
CodeVault Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   A Database object owns the engine and session factory for one Settings
       instance. The app factory creates it and stores it on app.state; the
       get_db_session dependency hands out one session per request that
       commits on success and rolls back on error.
Who:   Created by create_app(); used by routes via Depends(get_db_session).

Connection Pooling Strategy (PostgreSQL):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

SQLite (tests, local runs):
    In-memory databases exist per connection, so a StaticPool shares ONE
    connection across all sessions; otherwise every session would see an
    empty database.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import DateTime, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from codevault.config import Settings


def utcnow() -> datetime:
    """Timezone-aware current time in UTC. Every timestamp column uses this."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    TIMESTAMP WITH TIME ZONE that always hands back aware UTC datetimes.

    PostgreSQL returns aware values already; SQLite drops the offset on the
    way in and returns naive values, which would make `created_at <
    updated_at` comparisons blow up across backends.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with one shared metadata
    object (used by Alembic and by Database.create_all()).
    """
    pass


class Database:
    """
    Owns the async engine and session factory for one configuration.

    Lifecycle:
        1. create_app() builds Database(settings)
        2. Requests borrow sessions through get_db_session
        3. Lifespan shutdown calls dispose()
    """

    def __init__(self, settings: Settings):
        url = settings.resolved_database_url
        # Echo SQL queries in DEBUG mode for development visibility
        echo = settings.log_level == "DEBUG"

        if settings.is_sqlite:
            self.engine: AsyncEngine = create_async_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_async_engine(
                url,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
                echo=echo,
            )

        # expire_on_commit=False: attributes stay readable after commit so
        # response serialization does not trigger lazy loads outside the session
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create every table known to Base.metadata (tests and DB_AUTO_CREATE)."""
        # Import registers the mappers with Base.metadata
        import codevault.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Run SELECT 1; used by the health check."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """Close all pooled connections (application shutdown)."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the app's Database
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back (a bug after a query must not leave a
           half-written transaction behind) and re-raises for the handlers

    Example usage in a route:
        @router.get("/snippets")
        async def list_snippets(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
