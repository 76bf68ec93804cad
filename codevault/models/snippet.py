"""
CodeVault Backend — Snippet SQLAlchemy Models
===============================================

What:  ORM models for the `snippets` table and its ordered `snippet_tags`
       child table.
Who:   Used by SnippetService for all CRUD and listing.

Table Design Rationale:
    - Integer primary key, also the pagination cursor (id DESC = newest first)
    - user_id: NOT NULL FK, ON DELETE CASCADE; every snippet has one owner
    - code: TEXT; the size bound is enforced by the service (configurable)
    - version: starts at 1; updates do not change it
    - previous_version_id: nullable self-reference, stored and returned only

Tags:
    A comma-joined string column cannot hold a tag that itself contains a
    comma. Tags are rows in snippet_tags with an explicit position, loaded
    in order with the snippet (selectin) and exposed as Snippet.tags, a
    plain list of strings.

Query Patterns:
    - Own snippets:   WHERE user_id = :uid ORDER BY id DESC  → idx_snippets_user_id
    - Public feed:    WHERE is_public ORDER BY id DESC       → idx_snippets_is_public
    - Tag filter:     EXISTS (snippet_tags WHERE name = :tag) → idx_snippet_tags_name
"""

from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from codevault.database import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from codevault.models.user import User

MAX_TAG_LENGTH = 50


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """
    Clean a tag list for storage.

    Strips whitespace, drops empty entries and later duplicates; the first
    occurrence keeps its position.

    >>> normalize_tags([" api", "auth", "", "api"])
    ['api', 'auth']
    """
    cleaned: List[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class SnippetTag(Base):
    """One tag of one snippet; `position` keeps the user's ordering."""

    __tablename__ = "snippet_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snippet_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("snippets.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(MAX_TAG_LENGTH), nullable=False)

    __table_args__ = (
        Index("idx_snippet_tags_snippet_id", "snippet_id"),
        Index("idx_snippet_tags_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<SnippetTag(snippet_id={self.snippet_id}, position={self.position}, name='{self.name}')>"


class Snippet(Base):
    """
    A stored unit of code with metadata, owned by exactly one user.

    Lifecycle:
        1. Created by POST /api/snippets (owner = token identity, version = 1)
        2. Read by owner, or by anyone while is_public; each read bumps view_count
        3. Updated only by the owner; updated_at bumped, version unchanged
        4. Deleted only by the owner (tags go with it)
    """

    __tablename__ = "snippets"

    # ── Identity ──────────────────────────────────────────────────────────
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Code Content ──────────────────────────────────────────────────────
    code: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="python, javascript, csharp, ...",
    )
    framework: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="",
        comment="react, django, dotnet, ... (optional)",
    )

    # ── Flags ─────────────────────────────────────────────────────────────
    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    is_favorite: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # ── Usage ─────────────────────────────────────────────────────────────
    view_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    copy_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    last_accessed_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )

    # ── Versioning ────────────────────────────────────────────────────────
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    previous_version_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("snippets.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
    )

    # ── Organization ──────────────────────────────────────────────────────
    folder_path: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        default=None,
        comment="e.g. /work/apis/authentication",
    )
    source_url: Mapped[Optional[str]] = mapped_column(
        String(2000), nullable=True, default=None
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    # ── Ownership ─────────────────────────────────────────────────────────
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    owner: Mapped["User"] = relationship(back_populates="snippets")

    # selectin: async sessions cannot lazy-load, so tags ride along with
    # every SELECT of snippets
    tag_rows: Mapped[List[SnippetTag]] = relationship(
        order_by=SnippetTag.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_snippets_user_id", "user_id"),
        Index("idx_snippets_is_public", "is_public"),
    )

    @property
    def tags(self) -> List[str]:
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, values: Optional[Iterable[str]]) -> None:
        self.tag_rows = [
            SnippetTag(position=i, name=name)
            for i, name in enumerate(normalize_tags(values))
        ]

    def __repr__(self) -> str:
        return (
            f"<Snippet(id={self.id}, title='{self.title}', user_id={self.user_id}, "
            f"version={self.version})>"
        )
