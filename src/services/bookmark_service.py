"""Service layer for bookmark CRUD operations."""
import logging
from typing import Literal

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from schemas.bookmark import BookmarkCreate, BookmarkUpdate, BulkAction

logger = logging.getLogger(__name__)


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def create_bookmark(
    db: AsyncSession,
    user_id: int,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    The same URL may be saved more than once; no deduplication is performed.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = Bookmark(user_id=user_id, **data.model_dump())
    db.add(bookmark)
    await db.flush()
    await db.refresh(bookmark)
    return bookmark


async def get_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> Bookmark | None:
    """Get a bookmark by ID, scoped to user."""
    result = await db.execute(
        select(Bookmark).where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def search_bookmarks(
    db: AsyncSession,
    user_id: int,
    query: str | None = None,
    reading: bool | None = None,
    is_favorite: bool | None = None,
    is_archived: bool | None = None,
    folder: str | None = None,
    category: str | None = None,
    search_url: bool = True,
    sort_by: Literal["created_at", "updated_at", "title"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    offset: int = 0,
    limit: int | None = 50,
) -> tuple[list[Bookmark], int]:
    """
    Search and filter bookmarks for a user with pagination.

    Args:
        db: Database session.
        user_id: User ID to scope bookmarks.
        query: Case-insensitive substring matched against title, description and
            (when search_url is True) url.
        reading: Filter on the reading-list flag. None means no filter.
        is_favorite: Filter on the favorite flag. None means no filter.
        is_archived: Filter on the archived flag. None means no filter.
        folder: Exact folder match.
        category: Exact category match.
        search_url: Whether the text query also matches the URL.
        sort_by: Field to sort by.
        sort_order: Sort direction.
        offset: Pagination offset.
        limit: Pagination limit. None returns every match.

    Returns:
        Tuple of (list of bookmarks, total count).
    """
    base_query = select(Bookmark).where(Bookmark.user_id == user_id)

    if reading is not None:
        base_query = base_query.where(Bookmark.reading.is_(reading))
    if is_favorite is not None:
        base_query = base_query.where(Bookmark.is_favorite.is_(is_favorite))
    if is_archived is not None:
        base_query = base_query.where(Bookmark.is_archived.is_(is_archived))
    if folder is not None:
        base_query = base_query.where(Bookmark.folder == folder)
    if category is not None:
        base_query = base_query.where(Bookmark.category == category)

    if query:
        search_pattern = f"%{escape_ilike(query)}%"
        conditions = [
            Bookmark.title.ilike(search_pattern, escape="\\"),
            Bookmark.description.ilike(search_pattern, escape="\\"),
        ]
        if search_url:
            conditions.append(Bookmark.url.ilike(search_pattern, escape="\\"))
        base_query = base_query.where(or_(*conditions))

    # Get total count before pagination
    count_query = select(func.count()).select_from(base_query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Apply sorting with tiebreakers (created_at, then id for deterministic ordering)
    sort_columns = {
        "created_at": Bookmark.created_at,
        "updated_at": Bookmark.updated_at,
        "title": func.lower(Bookmark.title),
    }
    sort_column = sort_columns[sort_by]

    if sort_order == "desc":
        base_query = base_query.order_by(
            sort_column.desc(),
            Bookmark.created_at.desc(),
            Bookmark.id.desc(),
        )
    else:
        base_query = base_query.order_by(
            sort_column.asc(),
            Bookmark.created_at.asc(),
            Bookmark.id.asc(),
        )

    base_query = base_query.offset(offset).limit(limit)

    result = await db.execute(base_query)
    bookmarks = list(result.scalars().all())

    return bookmarks, total


async def update_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
    data: BookmarkUpdate,
) -> Bookmark | None:
    """
    Update a bookmark. Returns None if not found or wrong user.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return None

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(bookmark, field, value)

    await db.flush()
    await db.refresh(bookmark)
    return bookmark


async def delete_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> bool:
    """
    Delete a bookmark. Returns True if deleted, False if not found.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return False

    await db.delete(bookmark)
    await db.flush()
    return True


async def bulk_update_bookmarks(
    db: AsyncSession,
    user_id: int,
    bookmark_ids: list[int],
    action: BulkAction,
) -> int:
    """
    Apply one action to several of a user's bookmarks.

    IDs that don't exist or belong to another user are ignored.

    Returns:
        Number of bookmarks affected.
    """
    scope = (Bookmark.user_id == user_id, Bookmark.id.in_(bookmark_ids))
    if action == "delete":
        statement = delete(Bookmark).where(*scope)
    elif action == "archive":
        statement = update(Bookmark).where(*scope).values(is_archived=True)
    else:
        statement = update(Bookmark).where(*scope).values(reading=True)

    result = await db.execute(statement.execution_options(synchronize_session="fetch"))
    await db.flush()
    logger.info("Bulk %s applied to %d bookmarks for user %s", action, result.rowcount, user_id)
    return result.rowcount


async def get_user_tags(db: AsyncSession, user_id: int) -> list[str]:
    """Return the sorted distinct tags across a user's bookmarks."""
    result = await db.execute(select(Bookmark.tags).where(Bookmark.user_id == user_id))
    tags: set[str] = set()
    for bookmark_tags in result.scalars().all():
        tags.update(bookmark_tags or [])
    return sorted(tags)
