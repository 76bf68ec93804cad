"""
CodeVault Backend — Snippet Service (Snippet Store)
=====================================================

What:  Create, read, update, delete, copy and list snippets.
Why:   All ownership and visibility rules live here, independent of HTTP.
How:   Plain SQLAlchemy 2.0 select()/flush() against the request session;
       the session dependency commits.
Who:   Called by routes/snippets.py.

Access Rules:
    ┌──────────────┬─────────────────────┬──────────────────────────────┐
    │ Operation    │ Owner               │ Anyone else                  │
    ├──────────────┼─────────────────────┼──────────────────────────────┤
    │ get / copy   │ allowed             │ allowed if is_public,        │
    │              │                     │ else NotFoundError           │
    │ update       │ allowed             │ ForbiddenError               │
    │ delete       │ allowed             │ ForbiddenError               │
    │ list         │ own snippets only   │ (public feed: list_public)   │
    └──────────────┴─────────────────────┴──────────────────────────────┘

    Private snippets answer 404 (not 403) to non-owners on read, so their
    existence is not disclosed. Mutations answer 403 because the caller is
    acting on an id they already know.

Concurrency:
    No locking. Two owner updates racing on one snippet: last writer wins.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from codevault.database import utcnow
from codevault.exceptions import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from codevault.models.snippet import Snippet, SnippetTag
from codevault.schemas.snippet import (
    SnippetCreate,
    SnippetFilters,
    SnippetListResponse,
    SnippetResponse,
    SnippetUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CODE_LENGTH = 100_000

# Fields that may not be blank once set
_REQUIRED_TEXT_FIELDS = ("title", "code", "language")


class SnippetService:
    """
    Business logic layer for snippet operations.

    Stateless apart from the configured code-length bound.
    """

    def __init__(self, max_code_length: int = DEFAULT_MAX_CODE_LENGTH):
        self.max_code_length = max_code_length

    # ── Validation ────────────────────────────────────────────────────────

    def _validate(self, values: Dict[str, Any]) -> None:
        for name in _REQUIRED_TEXT_FIELDS:
            if name in values and (values[name] is None or not values[name].strip()):
                raise ValidationError(f"{name.capitalize()} must not be empty", field=name)
        code = values.get("code")
        if code is not None and len(code) > self.max_code_length:
            raise ValidationError(
                f"Code must be at most {self.max_code_length} characters",
                field="code",
                context={"length": len(code), "max_length": self.max_code_length},
            )

    # ── Create ────────────────────────────────────────────────────────────

    async def create_snippet(
        self,
        db: AsyncSession,
        owner_id: int,
        data: SnippetCreate,
    ) -> Snippet:
        """
        Persist a new snippet owned by `owner_id`.

        version = 1, counters = 0, created/updated/last-accessed = now.

        Raises:
            ValidationError: blank title/code/language, code too long
        """
        values = data.model_dump()
        self._validate(values)
        tags = values.pop("tags")

        now = utcnow()
        snippet = Snippet(
            **values,
            user_id=owner_id,
            version=1,
            view_count=0,
            copy_count=0,
            created_at=now,
            updated_at=now,
            last_accessed_at=now,
        )
        snippet.tags = tags
        db.add(snippet)
        await self._flush(db, "create")

        logger.info("Created snippet %d for user %d", snippet.id, owner_id)
        return snippet

    # ── Read ──────────────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, snippet_id: int) -> Snippet:
        try:
            snippet = await db.get(Snippet, snippet_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching snippet %d: %s", snippet_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the snippet. Please try again.",
                context={"snippet_id": snippet_id},
            )
        if snippet is None:
            raise NotFoundError(resource="snippet", resource_id=str(snippet_id))
        return snippet

    async def _load_visible(
        self,
        db: AsyncSession,
        viewer_id: Optional[int],
        snippet_id: int,
    ) -> Snippet:
        snippet = await self._load(db, snippet_id)
        if snippet.user_id != viewer_id and not snippet.is_public:
            raise NotFoundError(resource="snippet", resource_id=str(snippet_id))
        return snippet

    async def get_snippet(
        self,
        db: AsyncSession,
        viewer_id: Optional[int],
        snippet_id: int,
    ) -> Snippet:
        """
        Fetch one snippet for display and record the view.

        Args:
            viewer_id: caller's user id, or None for an anonymous request

        Raises:
            NotFoundError: unknown id, or private and viewer is not the owner
        """
        snippet = await self._load_visible(db, viewer_id, snippet_id)
        snippet.view_count += 1
        snippet.last_accessed_at = utcnow()
        await self._flush(db, "record view")
        return snippet

    async def record_copy(
        self,
        db: AsyncSession,
        viewer_id: Optional[int],
        snippet_id: int,
    ) -> Snippet:
        """Same visibility as get_snippet; bumps copy_count instead of view_count."""
        snippet = await self._load_visible(db, viewer_id, snippet_id)
        snippet.copy_count += 1
        snippet.last_accessed_at = utcnow()
        await self._flush(db, "record copy")
        return snippet

    # ── Update / Delete ───────────────────────────────────────────────────

    async def _load_owned(self, db: AsyncSession, owner_id: int, snippet_id: int) -> Snippet:
        snippet = await self._load(db, snippet_id)
        if snippet.user_id != owner_id:
            logger.warning(
                "User %d attempted to modify snippet %d owned by user %d",
                owner_id,
                snippet_id,
                snippet.user_id,
            )
            raise ForbiddenError(context={"snippet_id": snippet_id})
        return snippet

    async def update_snippet(
        self,
        db: AsyncSession,
        owner_id: int,
        snippet_id: int,
        data: SnippetUpdate,
    ) -> Snippet:
        """
        Apply the fields present in `data` to an owned snippet.

        The version number is left alone; updated_at always moves forward.

        Raises:
            NotFoundError:   unknown id
            ForbiddenError:  caller is not the owner
            ValidationError: a required field sent blank, code too long
        """
        snippet = await self._load_owned(db, owner_id, snippet_id)

        values = data.model_dump(include=data.model_fields_set)
        self._validate(values)
        # null for a non-nullable column means "unchanged"
        for name in ("description", "framework", "tags", "is_public", "is_favorite"):
            if name in values and values[name] is None:
                del values[name]

        if "tags" in values:
            snippet.tags = values.pop("tags")
        for name, value in values.items():
            setattr(snippet, name, value)
        snippet.updated_at = utcnow()

        await self._flush(db, "update")
        logger.info("Updated snippet %d (fields: %s)", snippet_id, ", ".join(sorted(data.model_fields_set)))
        return snippet

    async def delete_snippet(self, db: AsyncSession, owner_id: int, snippet_id: int) -> None:
        """
        Hard-delete an owned snippet and its tags.

        Raises:
            NotFoundError / ForbiddenError as for update_snippet
        """
        snippet = await self._load_owned(db, owner_id, snippet_id)
        await db.delete(snippet)
        await self._flush(db, "delete")
        logger.info("Deleted snippet %d", snippet_id)

    # ── List ──────────────────────────────────────────────────────────────

    async def list_snippets(
        self,
        db: AsyncSession,
        owner_id: int,
        filters: Optional[SnippetFilters] = None,
        limit: int = 20,
        cursor: Optional[int] = None,
    ) -> SnippetListResponse:
        """All of the caller's snippets (public or not), newest first."""
        return await self._page(db, Snippet.user_id == owner_id, filters, limit, cursor)

    async def list_public(
        self,
        db: AsyncSession,
        filters: Optional[SnippetFilters] = None,
        limit: int = 20,
        cursor: Optional[int] = None,
    ) -> SnippetListResponse:
        """Public snippets of every user, newest first."""
        return await self._page(db, Snippet.is_public.is_(True), filters, limit, cursor)

    def _apply_filters(self, query: Select, filters: Optional[SnippetFilters]) -> Select:
        if filters is None:
            return query
        if filters.language:
            query = query.where(Snippet.language == filters.language)
        if filters.tag:
            query = query.where(Snippet.tag_rows.any(SnippetTag.name == filters.tag))
        if filters.folder:
            query = query.where(Snippet.folder_path.startswith(filters.folder, autoescape=True))
        if filters.favorite is not None:
            query = query.where(Snippet.is_favorite.is_(filters.favorite))
        return query

    async def _page(
        self,
        db: AsyncSession,
        scope,
        filters: Optional[SnippetFilters],
        limit: int,
        cursor: Optional[int],
    ) -> SnippetListResponse:
        """
        One page of snippets matching `scope` and `filters`.

        Fetches limit + 1 rows: the extra row only answers has_more and is
        dropped from the page.
        """
        try:
            query = self._apply_filters(select(Snippet).where(scope), filters)
            if cursor is not None:
                query = query.where(Snippet.id < cursor)
            query = query.order_by(Snippet.id.desc()).limit(limit + 1)

            result = await db.execute(query)
            snippets = list(result.scalars().all())

            count_query = self._apply_filters(
                select(func.count(Snippet.id)).where(scope), filters
            )
            total_count = (await db.execute(count_query)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing snippets: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve snippets. Please try again.",
                context={"error_type": type(e).__name__},
            )

        has_more = len(snippets) > limit
        if has_more:
            snippets = snippets[:limit]
        next_cursor = snippets[-1].id if has_more and snippets else None

        return SnippetListResponse(
            snippets=[SnippetResponse.model_validate(s) for s in snippets],
            total_count=total_count,
            next_cursor=next_cursor,
            has_more=has_more,
        )

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _flush(self, db: AsyncSession, operation: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error during snippet %s: %s", operation, str(e), exc_info=True)
            raise DatabaseError(context={"operation": operation})
