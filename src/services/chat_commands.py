"""
Command grammar for the chat bots.

Inbound chat text is classified into a typed command by an ordered list of
rules. Matching is done on the lowercased, trimmed text; payload values (URL,
title, description, search query) keep the case the user typed.

Rules, first match wins:

1. ``add <url> | <title> [| <tags>] [| <description>]``  -> AddBookmark
2. ``search <query>``                                   -> Search
3. text containing "reading"                            -> ListReading
4. text containing "show all", "all bookmarks", "list"  -> ListAll
5. anything else                                        -> Unrecognized

The prefix rules come first so that e.g. ``add https://x.com/reading | ...``
is always an AddBookmark.
"""
from collections.abc import Callable
from dataclasses import dataclass, field

from schemas.bookmark import normalize_tags

DEFAULT_TAGS = ("general",)

ADD_PREFIX = "add "
SEARCH_PREFIX = "search "


@dataclass(frozen=True)
class ListReading:
    """Show the user's reading list."""


@dataclass(frozen=True)
class ListAll:
    """Show the user's latest bookmarks."""


@dataclass(frozen=True)
class AddBookmark:
    """Save a new bookmark."""

    url: str
    title: str
    tags: list[str] = field(default_factory=lambda: list(DEFAULT_TAGS))
    description: str | None = None


@dataclass(frozen=True)
class MalformedAddBookmark:
    """An ``add`` command missing its URL or title."""

    raw_text: str


@dataclass(frozen=True)
class Search:
    """Search bookmark titles and descriptions."""

    query: str


@dataclass(frozen=True)
class Help:
    """Show the command reference."""


@dataclass(frozen=True)
class Unrecognized:
    """Free text that isn't a bookmark command."""

    raw_text: str


Command = (
    ListReading | ListAll | AddBookmark | MalformedAddBookmark | Search | Help | Unrecognized
)


def _parse_add(text: str) -> AddBookmark | MalformedAddBookmark:
    """Split ``add url | title | tags | description`` into an AddBookmark."""
    parts = [part.strip() for part in text[len(ADD_PREFIX):].split("|")]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return MalformedAddBookmark(raw_text=text)

    tags = normalize_tags(parts[2].split(",")) if len(parts) > 2 else []
    description = parts[3] if len(parts) > 3 and parts[3] else None
    return AddBookmark(
        url=parts[0],
        title=parts[1],
        tags=tags or list(DEFAULT_TAGS),
        description=description,
    )


def _parse_search(text: str) -> Search:
    return Search(query=text[len(SEARCH_PREFIX):].strip())


# (predicate on lowercased text, constructor taking the trimmed original text)
Rule = tuple[Callable[[str], bool], Callable[[str], Command]]

RULES: tuple[Rule, ...] = (
    (lambda lowered: lowered.startswith(ADD_PREFIX), _parse_add),
    (lambda lowered: lowered.startswith(SEARCH_PREFIX), _parse_search),
    (lambda lowered: "reading" in lowered, lambda _: ListReading()),
    (
        lambda lowered: any(
            phrase in lowered for phrase in ("show all", "all bookmarks", "list")
        ),
        lambda _: ListAll(),
    ),
)


def parse_command(text: str) -> Command:
    """
    Classify raw chat text into a command.

    Never raises: text no rule matches becomes Unrecognized.
    """
    trimmed = text.strip()
    lowered = trimmed.lower()
    for matches, build in RULES:
        if matches(lowered):
            return build(trimmed)
    return Unrecognized(raw_text=text)
