"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_TITLE_LENGTH = 500


def normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize a list of tags.

    Tags are trimmed and lowercased, empty entries are dropped, and duplicates
    (compared case-insensitively) are removed keeping the first occurrence.

    Args:
        tags: List of raw tag strings.

    Returns:
        List of normalized tags in their original order.
    """
    normalized: list[str] = []
    for tag in tags:
        trimmed = tag.strip().lower()
        if trimmed and trimmed not in normalized:
            normalized.append(trimmed)
    return normalized


def validate_absolute_url(url: str) -> str:
    """
    Validate that a URL is absolute (has a scheme and a host).

    Raises:
        ValueError: If the URL is relative or malformed.
    """
    url = url.strip()
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid URL: '{url}'. Use an absolute URL such as https://example.com")
    return url


def validate_title(title: str) -> str:
    """Validate that a title is non-empty and within the length limit."""
    title = title.strip()
    if not title:
        raise ValueError("Title cannot be empty")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(
            f"Title exceeds maximum length of {MAX_TITLE_LENGTH:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark in the store.

    Tags may be empty here; the web form endpoint uses BookmarkCreateRequest,
    which requires at least one tag.
    """

    url: str
    title: str
    description: str | None = None
    tags: list[str] = []
    reading: bool = False
    is_favorite: bool = False
    is_archived: bool = False
    category: str | None = None
    folder: str | None = None
    notes: str | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Validate the URL is absolute."""
        return validate_absolute_url(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Validate title."""
        return validate_title(v)

    @field_validator("tags", mode="before")
    @classmethod
    def check_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize tags."""
        if v is None:
            return []
        return normalize_tags(v)


class BookmarkCreateRequest(BookmarkCreate):
    """Schema for bookmarks created through the API (the web form)."""

    @field_validator("tags")
    @classmethod
    def require_tags(cls, v: list[str]) -> list[str]:
        """Require at least one tag."""
        if not v:
            raise ValueError("At least one tag is required")
        return v


class BookmarkUpdate(BaseModel):
    """Schema for updating an existing bookmark. Omitted fields are left unchanged."""

    url: str | None = None
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    reading: bool | None = None
    is_favorite: bool | None = None
    is_archived: bool | None = None
    category: str | None = None
    folder: str | None = None
    notes: str | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str | None) -> str | None:
        """Validate the URL is absolute if provided; it may not be cleared."""
        if v is None:
            raise ValueError("URL cannot be null")
        return validate_absolute_url(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Validate title if provided; it may not be cleared."""
        if v is None:
            raise ValueError("Title cannot be null")
        return validate_title(v)

    @field_validator("tags", mode="before")
    @classmethod
    def check_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize tags if provided; an update may not remove every tag."""
        if v is None:
            return None
        normalized = normalize_tags(v)
        if not normalized:
            raise ValueError("At least one tag is required")
        return normalized


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    description: str | None
    tags: list[str]
    reading: bool
    is_favorite: bool
    is_archived: bool
    category: str | None
    folder: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class BookmarkListResponse(BaseModel):
    """Schema for paginated bookmark list responses."""

    items: list[BookmarkResponse]
    total: int
    offset: int
    limit: int
    has_more: bool


BulkAction = Literal["archive", "add_to_reading", "delete"]


class BookmarkBulkRequest(BaseModel):
    """Schema for applying one action to several bookmarks at once."""

    ids: list[int] = Field(min_length=1, max_length=500)
    action: BulkAction


class BookmarkBulkResponse(BaseModel):
    """Number of bookmarks the bulk action was applied to."""

    updated: int


class TagListResponse(BaseModel):
    """Distinct tags used across a user's bookmarks."""

    tags: list[str]
