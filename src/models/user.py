"""User model for accounts and their linked chat identities."""
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.api_token import ApiToken
    from models.bookmark import Bookmark


class User(Base, TimestampMixin):
    """
    User model - an account that owns bookmarks.

    An account can be reached from chat platforms once a Telegram user id
    and/or a WhatsApp phone number has been linked to it. Each identity is
    unique across accounts.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        comment="Identifier from the auth provider",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    telegram_id: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
        comment="Telegram user id (message.from.id) as a string",
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(32),
        unique=True,
        index=True,
        nullable=True,
        comment="WhatsApp sender number, matched exactly against webhook 'from'",
    )

    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    api_tokens: Mapped[list["ApiToken"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
