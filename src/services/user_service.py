"""Service layer for accounts and their linked chat identities."""
import logging
from typing import Literal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from models.user import User
from services.exceptions import IdentityAlreadyLinkedError

logger = logging.getLogger(__name__)

Platform = Literal["telegram", "whatsapp"]


def _identity_column(platform: Platform) -> InstrumentedAttribute:
    """Column holding the external identity for a chat platform."""
    return User.telegram_id if platform == "telegram" else User.phone_number


async def get_or_create_user(
    db: AsyncSession,
    external_id: str,
    email: str | None = None,
) -> User:
    """
    Get existing user or create a new one.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    result = await db.execute(select(User).where(User.external_id == external_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(external_id=external_id, email=email)
        db.add(user)
        await db.flush()
    elif email and user.email != email:
        user.email = email
        await db.flush()

    return user


async def resolve_account(
    db: AsyncSession,
    platform: Platform,
    external_id: str,
) -> User | None:
    """
    Find the account linked to a chat identity.

    Telegram senders are matched on telegram_id, WhatsApp senders on
    phone_number, both by exact string comparison.

    Returns:
        The linked user, or None if the identity has not been linked yet.
    """
    column = _identity_column(platform)
    result = await db.execute(select(User).where(column == external_id))
    return result.scalar_one_or_none()


async def link_identity(
    db: AsyncSession,
    user: User,
    platform: Platform,
    external_id: str,
) -> User:
    """
    Attach a chat identity to an account, replacing any previous one.

    Raises:
        IdentityAlreadyLinkedError: If another account already holds the identity.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    existing = await resolve_account(db, platform, external_id)
    if existing is not None and existing.id != user.id:
        raise IdentityAlreadyLinkedError(platform, external_id)

    setattr(user, _identity_column(platform).key, external_id)
    try:
        await db.flush()
    except IntegrityError as e:
        # Fallback for race condition: unique constraint on the identity column
        await db.rollback()
        raise IdentityAlreadyLinkedError(platform, external_id) from e
    logger.info("Linked %s identity to user %s", platform, user.id)
    await db.refresh(user)
    return user


async def unlink_identity(db: AsyncSession, user: User, platform: Platform) -> User:
    """Remove a chat identity from an account."""
    setattr(user, _identity_column(platform).key, None)
    await db.flush()
    await db.refresh(user)
    return user
