"""Run chat commands against the bookmark store and render the replies."""
import logging
from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from schemas.bookmark import BookmarkCreate
from services import bookmark_service
from services.chat_commands import (
    AddBookmark,
    Command,
    ListAll,
    ListReading,
    MalformedAddBookmark,
    Search,
)

logger = logging.getLogger(__name__)

LIST_ALL_LIMIT = 10
SEARCH_LIMIT = 5

# Telegram rejects messages over 4096 characters
MAX_REPLY_LENGTH = 4000

FAILURE_MARKER = "❌"

FAILURE_ACTIONS: dict[type, str] = {
    ListReading: "fetching reading list",
    ListAll: "fetching bookmarks",
    AddBookmark: "adding bookmark",
    Search: "searching bookmarks",
}

READING_LIST_EMPTY = "📚 Your reading list is empty."
NO_BOOKMARKS = "📑 You have no bookmarks yet."

ADD_USAGE = (
    f"{FAILURE_MARKER} Invalid format. Use: add [url] | [title] | [tags]\n\n"
    "Example: add https://example.com | Example Site | tech,tutorial"
)

HELP_TEXT = (
    "📖 *Available Commands:*\n\n"
    "• *reading list* - Show your reading list\n"
    "• *list* or *show all* - Show all bookmarks\n"
    "• *add [url] | [title] | [tags]* - Add new bookmark\n"
    "• *search [query]* - Search bookmarks\n"
    "• *help* - Show this help message\n\n"
    "Example:\n"
    "add https://example.com | Example | tech,tutorial"
)


def render_bookmarks(
    heading: str,
    bookmarks: Sequence[Bookmark],
    include_description: bool = True,
    max_length: int = MAX_REPLY_LENGTH,
) -> str:
    """
    Render bookmarks as a 1-indexed Markdown list under a heading.

    Whole entries that would push the text past max_length are left out and
    counted in a closing "...and N more" line.
    """
    lines = [heading, ""]
    length = len(heading) + 1
    for index, bookmark in enumerate(bookmarks, start=1):
        entry = [f"{index}. *{bookmark.title}*", f"   🔗 {bookmark.url}"]
        if include_description and bookmark.description:
            entry.append(f"   📝 {bookmark.description}")
        if bookmark.tags:
            entry.append(f"   🏷️ {', '.join(bookmark.tags)}")
        entry.append("")

        entry_length = sum(len(line) + 1 for line in entry)
        if length + entry_length > max_length:
            lines.append(f"...and {len(bookmarks) - index + 1} more")
            break
        lines.extend(entry)
        length += entry_length
    return "\n".join(lines)


async def _list_reading(db: AsyncSession, user_id: int) -> str:
    bookmarks, _ = await bookmark_service.search_bookmarks(
        db, user_id, reading=True, limit=None,
    )
    if not bookmarks:
        return READING_LIST_EMPTY
    return render_bookmarks("📚 *Your Reading List:*", bookmarks)


async def _list_all(db: AsyncSession, user_id: int) -> str:
    bookmarks, _ = await bookmark_service.search_bookmarks(
        db, user_id, limit=LIST_ALL_LIMIT,
    )
    if not bookmarks:
        return NO_BOOKMARKS
    return render_bookmarks("📑 *Your Latest Bookmarks:*", bookmarks)


async def _add_bookmark(db: AsyncSession, user_id: int, command: AddBookmark) -> str:
    data = BookmarkCreate(
        url=command.url,
        title=command.title,
        tags=command.tags,
        description=command.description,
        reading=False,
    )
    bookmark = await bookmark_service.create_bookmark(db, user_id, data)
    return (
        "✅ Bookmark added successfully!\n\n"
        f"📌 *{bookmark.title}*\n"
        f"🔗 {bookmark.url}\n"
        f"🏷️ {', '.join(bookmark.tags)}"
    )


async def _search(db: AsyncSession, user_id: int, command: Search) -> str:
    bookmarks, _ = await bookmark_service.search_bookmarks(
        db, user_id, query=command.query, search_url=False, limit=SEARCH_LIMIT,
    )
    if not bookmarks:
        return f'🔍 No bookmarks found for "{command.query}"'
    return render_bookmarks(
        f'🔍 *Search results for "{command.query}":*',
        bookmarks,
        include_description=False,
    )


async def execute_command(db: AsyncSession, command: Command, user_id: int) -> str:
    """
    Run a command for a user and return the chat reply.

    Store and validation failures are reported in the reply (prefixed with
    FAILURE_MARKER) instead of being raised, so the webhook still answers 200.
    """
    action = FAILURE_ACTIONS.get(type(command))
    try:
        match command:
            case ListReading():
                return await _list_reading(db, user_id)
            case ListAll():
                return await _list_all(db, user_id)
            case AddBookmark():
                return await _add_bookmark(db, user_id, command)
            case Search():
                return await _search(db, user_id, command)
            case MalformedAddBookmark():
                return ADD_USAGE
            case _:
                return HELP_TEXT
    except ValidationError as e:
        messages = "; ".join(
            err["msg"].removeprefix("Value error, ") for err in e.errors()
        )
        logger.warning(
            "Chat command %s rejected for user %s: %s", type(command).__name__, user_id, messages,
        )
        return f"{FAILURE_MARKER} Error {action}: {messages}"
    except SQLAlchemyError as e:
        logger.warning("Chat command %s failed for user %s: %s", type(command).__name__, user_id, e)
        await db.rollback()
        return f"{FAILURE_MARKER} Error {action}: {e}"
