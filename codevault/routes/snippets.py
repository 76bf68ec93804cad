"""
CodeVault Backend — Snippet Route Handlers
============================================

What:  Snippet CRUD, copy tracking, own listing and the public feed.
How:   Thin handlers: resolve caller, call SnippetService, serialize.

Routes:
    POST        /api/snippets              create (bearer)
    GET         /api/snippets              own snippets, paginated (bearer)
    GET         /api/snippets/public       public feed (anonymous OK)
    GET         /api/snippets/{id}         one snippet (owner, or anyone if public)
    PUT/PATCH   /api/snippets/{id}         partial update (owner)
    DELETE      /api/snippets/{id}         delete (owner)
    POST        /api/snippets/{id}/copy    record a copy, return the snippet

Why /public is declared before /{snippet_id}:
    Starlette matches in declaration order; "public" is not an int and
    would otherwise be rejected by the {snippet_id} route's validation.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from codevault.database import get_db_session
from codevault.dependencies import get_snippet_service, optional_user, require_user
from codevault.models.user import User
from codevault.schemas.common import ErrorResponse
from codevault.schemas.snippet import (
    SnippetCreate,
    SnippetFilters,
    SnippetListResponse,
    SnippetResponse,
    SnippetUpdate,
)
from codevault.services.snippet_service import SnippetService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/snippets", tags=["Snippets"])

# Ids are 32-bit INTEGER columns; larger values can never match a row
MAX_ID = 2_147_483_647
SnippetId = Annotated[int, Path(ge=1, le=MAX_ID, description="Snippet id")]

_AUTH_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}


def _filters(
    language: Optional[str] = Query(default=None, description="Exact language tag"),
    tag: Optional[str] = Query(default=None, description="Snippets carrying this tag"),
    folder: Optional[str] = Query(default=None, description="Folder path prefix"),
    favorite: Optional[bool] = Query(default=None, description="Only favorites (true) or non-favorites (false)"),
) -> SnippetFilters:
    return SnippetFilters(language=language, tag=tag, folder=folder, favorite=favorite)


@router.post(
    "",
    response_model=SnippetResponse,
    responses=_AUTH_ERRORS,
    summary="Create a snippet",
)
async def create_snippet(
    body: SnippetCreate,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetResponse:
    snippet = await snippets.create_snippet(db, owner_id=user.id, data=body)
    return SnippetResponse.model_validate(snippet)


@router.get(
    "",
    response_model=SnippetListResponse,
    responses=_AUTH_ERRORS,
    summary="List your snippets",
)
async def list_snippets(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100, description="Items per page (max 100)"),
    cursor: Optional[int] = Query(default=None, ge=1, le=MAX_ID, description="nextCursor from the previous page"),
    filters: SnippetFilters = Depends(_filters),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetListResponse:
    """
    Page through the caller's snippets, newest first.

    Page 1: GET /api/snippets?limit=20
    Page 2: GET /api/snippets?limit=20&cursor=<nextCursor>
    """
    result = await snippets.list_snippets(
        db, owner_id=user.id, filters=filters, limit=limit, cursor=cursor
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/public",
    response_model=SnippetListResponse,
    summary="List public snippets of all users",
)
async def list_public_snippets(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    cursor: Optional[int] = Query(default=None, ge=1, le=MAX_ID),
    filters: SnippetFilters = Depends(_filters),
    db: AsyncSession = Depends(get_db_session),
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetListResponse:
    result = await snippets.list_public(db, filters=filters, limit=limit, cursor=cursor)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/{snippet_id}",
    response_model=SnippetResponse,
    responses={404: {"description": "Snippet not found", "model": ErrorResponse}},
    summary="Get a snippet",
)
async def get_snippet(
    snippet_id: SnippetId,
    response: Response,
    user: Optional[User] = Depends(optional_user),
    db: AsyncSession = Depends(get_db_session),
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetResponse:
    snippet = await snippets.get_snippet(
        db, viewer_id=user.id if user else None, snippet_id=snippet_id
    )
    # Why private: content may belong to one user; shared caches must not keep it
    response.headers["Cache-Control"] = "private, no-cache"
    return SnippetResponse.model_validate(snippet)


_UPDATE_ERRORS = {
    **_AUTH_ERRORS,
    403: {"description": "Not the owner", "model": ErrorResponse},
    404: {"description": "Snippet not found", "model": ErrorResponse},
}


@router.put(
    "/{snippet_id}",
    response_model=SnippetResponse,
    responses=_UPDATE_ERRORS,
    summary="Update a snippet (only fields sent are changed)",
)
@router.patch(
    "/{snippet_id}",
    response_model=SnippetResponse,
    responses=_UPDATE_ERRORS,
    summary="Update a snippet (only fields sent are changed)",
)
async def update_snippet(
    snippet_id: SnippetId,
    body: SnippetUpdate,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetResponse:
    snippet = await snippets.update_snippet(
        db, owner_id=user.id, snippet_id=snippet_id, data=body
    )
    return SnippetResponse.model_validate(snippet)


@router.delete(
    "/{snippet_id}",
    status_code=204,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Snippet not found", "model": ErrorResponse},
    },
    summary="Delete a snippet",
)
async def delete_snippet(
    snippet_id: SnippetId,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
    snippets: SnippetService = Depends(get_snippet_service),
) -> Response:
    await snippets.delete_snippet(db, owner_id=user.id, snippet_id=snippet_id)
    return Response(status_code=204)


@router.post(
    "/{snippet_id}/copy",
    response_model=SnippetResponse,
    responses={404: {"description": "Snippet not found", "model": ErrorResponse}},
    summary="Record that a snippet's code was copied",
)
async def copy_snippet(
    snippet_id: SnippetId,
    user: Optional[User] = Depends(optional_user),
    db: AsyncSession = Depends(get_db_session),
    snippets: SnippetService = Depends(get_snippet_service),
) -> SnippetResponse:
    snippet = await snippets.record_copy(
        db, viewer_id=user.id if user else None, snippet_id=snippet_id
    )
    return SnippetResponse.model_validate(snippet)
