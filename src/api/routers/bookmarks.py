"""Bookmark CRUD endpoints."""
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.bookmark import (
    BookmarkBulkRequest,
    BookmarkBulkResponse,
    BookmarkCreateRequest,
    BookmarkListResponse,
    BookmarkResponse,
    BookmarkUpdate,
    TagListResponse,
)
from services import bookmark_service

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Create a new bookmark. Requires a title, an absolute URL, and at least one tag."""
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    return BookmarkResponse.model_validate(bookmark)


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    q: str | None = Query(default=None, description="Search query (matches title, description, url)"),  # noqa: E501
    reading: bool | None = Query(default=None, description="Filter on the reading list flag"),
    is_favorite: bool | None = Query(default=None, description="Filter on the favorite flag"),
    is_archived: bool | None = Query(default=None, description="Filter on the archived flag"),
    folder: str | None = Query(default=None, description="Filter by folder"),
    category: str | None = Query(default=None, description="Filter by category"),
    sort_by: Literal["created_at", "updated_at", "title"] = Query(default="created_at", description="Sort field"),  # noqa: E501
    sort_order: Literal["asc", "desc"] = Query(default="desc", description="Sort order"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=50, ge=1, le=100, description="Pagination limit"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """
    List bookmarks for the current user with search, filtering, and sorting.

    - **q**: Text search across title, description, and url (case-insensitive)
    - **reading** / **is_favorite** / **is_archived**: Flag filters; omit for no filter
    - **sort_by**: Sort by created_at (default), updated_at, or title
    - **sort_order**: Sort ascending or descending (default: desc)
    """
    bookmarks, total = await bookmark_service.search_bookmarks(
        db=db,
        user_id=current_user.id,
        query=q,
        reading=reading,
        is_favorite=is_favorite,
        is_archived=is_archived,
        folder=folder,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order,
        offset=offset,
        limit=limit,
    )
    items = [BookmarkResponse.model_validate(b) for b in bookmarks]
    has_more = offset + len(items) < total
    return BookmarkListResponse(
        items=items,
        total=total,
        offset=offset,
        limit=limit,
        has_more=has_more,
    )


@router.get("/tags", response_model=TagListResponse)
async def list_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """List the distinct tags used across the current user's bookmarks."""
    tags = await bookmark_service.get_user_tags(db, current_user.id)
    return TagListResponse(tags=tags)


@router.post("/bulk", response_model=BookmarkBulkResponse)
async def bulk_update_bookmarks(
    data: BookmarkBulkRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkBulkResponse:
    """Archive, add to the reading list, or delete several bookmarks at once."""
    updated = await bookmark_service.bulk_update_bookmarks(
        db, current_user.id, data.ids, data.action,
    )
    return BookmarkBulkResponse(updated=updated)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Update a bookmark. Toggling reading/is_favorite/is_archived goes through here too."""
    bookmark = await bookmark_service.update_bookmark(
        db, current_user.id, bookmark_id, data,
    )
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a bookmark."""
    deleted = await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bookmark not found")
