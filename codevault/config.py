"""
CodeVault Backend — Application Configuration
===============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
       A missing JWT secret or database location aborts startup instead of
       surfacing as a 500 on the first request.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges. load_settings() builds and validates ONE
       Settings object, which the app factory passes to every component.
Who:   Called by codevault.main (app factory, CLI) and alembic/env.py.
When:  Once at process start.

Design Decision:
    There is no module-level settings singleton. Components receive the
    Settings instance they need (Database, TokenService, middleware) so
    tests can build an app against any configuration without touching
    os.environ, and no request ever reads the environment ad hoc.
"""

from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from codevault.exceptions import ConfigurationError

# HS256 keys shorter than the digest size weaken the signature
MIN_JWT_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Development defaults exist for everything except the two security
    sensitive values: the database location and JWT_SECRET. Those have no
    usable default and are checked by validate_required().

    Attributes are grouped by concern for readability.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # What: Full connection URL. Takes precedence over the DB_* parts below.
    # Accepts postgres://, postgresql:// (rewritten to asyncpg) or any
    # explicit async driver URL (sqlite+aiosqlite:// in tests).
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )

    # What: Discrete connection parts, used when DATABASE_URL is not set
    db_host: Optional[str] = Field(default=None)
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_name: Optional[str] = Field(default=None)
    db_user: Optional[str] = Field(default=None)
    db_password: Optional[str] = Field(default=None)

    # What: Connection pool sizing (ignored for SQLite)
    # Valid range: 5-100 (PostgreSQL default max_connections is 100)
    db_pool_size: int = Field(default=20, ge=5, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # What: Create missing tables from ORM metadata at startup.
    # Production schema is owned by Alembic; this is for local runs.
    db_auto_create: bool = Field(default=False)

    # ── Authentication ────────────────────────────────────────────────────
    # What: Shared HMAC secret for signing bearer tokens
    # Required: YES, at least 32 characters
    jwt_secret: str = Field(default="", description="HS256 signing secret")

    # What: Token lifetime in days. JWTSETTINGS__EXPIRATIONDAYS is accepted
    # for deployments that still export the old nested-section name.
    jwt_expiration_days: int = Field(
        default=7,
        ge=1,
        le=365,
        validation_alias=AliasChoices(
            "jwt_expiration_days",
            "jwtsettings__expirationdays",
        ),
    )

    # ── Snippets ──────────────────────────────────────────────────────────
    # What: Upper bound on the code body of a single snippet (characters)
    max_code_length: int = Field(default=100_000, ge=1_000, le=1_000_000)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs (parsed by cors_origins_list)
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # What: Per-IP sliding window rate limit
    rate_limit_requests: int = Field(default=1000, ge=10, le=100000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # DATABASE_URL and database_url both work
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> Optional[str]:
        """
        What:  The async SQLAlchemy URL to connect with, or None if unknown.
        How:   DATABASE_URL wins; otherwise assembled from DB_HOST/DB_NAME/DB_USER.

        Examples:
            postgres://u:p@h:5432/db        → postgresql+asyncpg://u:p@h:5432/db
            postgresql://u:p@h/db           → postgresql+asyncpg://u:p@h/db
            sqlite+aiosqlite:///:memory:    → unchanged
        """
        if self.database_url:
            url = self.database_url.strip()
            for prefix in ("postgres://", "postgresql://"):
                if url.startswith(prefix):
                    return "postgresql+asyncpg://" + url[len(prefix):]
            return url

        if self.db_host and self.db_name and self.db_user:
            return URL.create(
                "postgresql+asyncpg",
                username=self.db_user,
                password=self.db_password or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
            ).render_as_string(hide_password=False)

        return None

    @property
    def is_sqlite(self) -> bool:
        url = self.resolved_database_url or ""
        return url.startswith("sqlite")

    def validate_required(self) -> None:
        """
        What:  Validates that security-critical settings are configured.
        When:  Called by create_app() before any component is built.
        Why:   Running with no signing secret or no database is never useful;
               the process must refuse to start.

        Raises:
            ConfigurationError: listing every problem found.
        """
        errors = []
        if not self.jwt_secret:
            errors.append("JWT_SECRET is not set.")
        elif len(self.jwt_secret) < MIN_JWT_SECRET_LENGTH:
            errors.append(
                f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters "
                f"(got {len(self.jwt_secret)})."
            )
        if self.resolved_database_url is None:
            errors.append(
                "Database connection is not configured. "
                "Set DATABASE_URL or DB_HOST, DB_NAME, DB_USER and DB_PASSWORD."
            )
        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors),
                problems=errors,
            )


def load_settings(**overrides) -> Settings:
    """
    Build and validate the process-wide Settings.

    Keyword overrides take precedence over the environment (used by the CLI
    and by tests).

    Raises:
        ConfigurationError: if the configuration is unusable.
    """
    settings = Settings(**overrides)
    settings.validate_required()
    return settings
