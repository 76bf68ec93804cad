"""
CodeVault Backend — User SQLAlchemy Model
===========================================

What:  ORM model representing the `users` table.
Why:   Holds login identity and profile data; owns snippets.
Who:   Used by AuthService for register/login/profile and by the auth
       dependency to resolve the caller of every authenticated request.

Table Design Rationale:
    - Integer primary key: the id is embedded in bearer tokens as `sub`
    - username: unique index, case-sensitive exact match (as stored)
    - password_hash: Argon2 PHC string (salt and parameters embedded);
      never part of any response schema
    - created_at / last_login_at: UTC with timezone
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from codevault.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from codevault.models.snippet import Snippet


class User(Base):
    """
    A registered account.

    Lifecycle:
        1. Created by POST /api/auth/register
        2. last_login_at refreshed by every successful login
        3. display_name / bio editable through PUT /api/auth/me
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Why unique index (not just an app check): two concurrent registrations
    # race past the SELECT; the index makes the database the final arbiter
    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Login name, unique, case-sensitive",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Argon2 digest of the password (salted)",
    )

    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
        comment="Name shown in the UI",
    )

    bio: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Optional profile bio",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )

    last_login_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )

    # Never iterated in request code; exists for the ON DELETE cascade
    snippets: Mapped[List["Snippet"]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
