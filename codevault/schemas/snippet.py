"""
CodeVault Backend — Snippet Schemas
=====================================

What:  Pydantic models defining the snippet API contract.
Why:   Strict input validation, automatic serialization, OpenAPI docs.

Create vs Update:
    SnippetCreate has defaults for everything optional.
    SnippetUpdate has NO defaults that mean anything: the service applies
    only the fields the client actually sent (model_fields_set), so
    `{"title": "new"}` changes the title and nothing else. A null for a
    non-nullable field (description, framework, tags, isPublic, isFavorite)
    also means "unchanged"; send `"tags": []` to remove every tag.

Code length:
    The upper bound is configurable (MAX_CODE_LENGTH) and therefore checked
    by SnippetService, not by a static Field constraint.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from codevault.models.snippet import MAX_TAG_LENGTH
from codevault.schemas.common import CamelModel

MAX_TAGS = 50


def _check_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return tags
    if len(tags) > MAX_TAGS:
        raise ValueError(f"At most {MAX_TAGS} tags are allowed")
    for tag in tags:
        if len(tag.strip()) > MAX_TAG_LENGTH:
            raise ValueError(f"Tags must be at most {MAX_TAG_LENGTH} characters")
    return tags


class SnippetCreate(CamelModel):
    title: str = Field(max_length=200)
    description: str = Field(default="")
    code: str
    language: str = Field(max_length=50)
    framework: str = Field(default="", max_length=50)
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    folder_path: Optional[str] = Field(default=None, max_length=500)
    source_url: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _check_tags(v)


class SnippetUpdate(CamelModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    code: Optional[str] = None
    language: Optional[str] = Field(default=None, max_length=50)
    framework: Optional[str] = Field(default=None, max_length=50)
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    is_favorite: Optional[bool] = None
    folder_path: Optional[str] = Field(default=None, max_length=500)
    source_url: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_tags(v)


class SnippetResponse(CamelModel):
    """Full representation of a snippet, as returned by every snippet endpoint."""
    id: int
    title: str
    description: str
    code: str
    language: str
    framework: str
    tags: List[str]
    is_public: bool
    is_favorite: bool
    view_count: int
    copy_count: int
    last_accessed_at: datetime
    version: int
    previous_version_id: Optional[int] = None
    folder_path: Optional[str] = None
    source_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user_id: int


class SnippetListResponse(CamelModel):
    """
    What:  Page wrapper for the snippet list endpoints.

    Pagination strategy (cursor-based):
        Snippets are ordered newest first by id. next_cursor is the id of the
        last item on this page; the client sends it back as `cursor` and gets
        items with smaller ids. Inserts during paging never shift pages.
    """
    snippets: List[SnippetResponse]
    total_count: int = Field(description="Total number of snippets matching filters")
    next_cursor: Optional[int] = Field(default=None, description="Cursor for the next page")
    has_more: bool


class SnippetFilters(CamelModel):
    """Optional list filters, all combined with AND."""
    language: Optional[str] = None
    tag: Optional[str] = None
    folder: Optional[str] = Field(default=None, description="Folder path prefix")
    favorite: Optional[bool] = None
