"""Seed script for the local dev database, and issuing API tokens.

Usage:
    PYTHONPATH=src python scripts/seed_data.py populate
    PYTHONPATH=src python scripts/seed_data.py populate --force --telegram-id 123456789
    PYTHONPATH=src python scripts/seed_data.py clear
    PYTHONPATH=src python scripts/seed_data.py create-token --external-id alice --name CLI
"""

import argparse
import asyncio
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.auth import DEV_EXTERNAL_ID, get_or_create_dev_user
from core.config import get_settings
from db.session import build_engine, init_db
from models import Bookmark, User
from schemas.bookmark import BookmarkCreate
from services.bookmark_service import create_bookmark
from services.token_service import create_token
from services.user_service import get_or_create_user, link_identity

logger = logging.getLogger(__name__)

BOOKMARKS = [
    {
        'url': 'https://docs.python.org/3/',
        'title': 'Python Official Documentation',
        'description': 'Comprehensive reference for the Python programming language.',
        'tags': ['python', 'reference'],
        'is_favorite': True,
        'folder': 'Docs',
    },
    {
        'url': 'https://fastapi.tiangolo.com/',
        'title': 'FastAPI',
        'description': 'Modern, fast web framework for building APIs with Python type hints.',
        'tags': ['python', 'web-dev'],
        'reading': True,
        'category': 'Frameworks',
    },
    {
        'url': 'https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html',
        'title': 'SQLAlchemy Asyncio Extension',
        'description': 'Using AsyncSession and async engines with SQLAlchemy 2.0.',
        'tags': ['python', 'database'],
        'reading': True,
    },
    {
        'url': 'https://core.telegram.org/bots/api',
        'title': 'Telegram Bot API',
        'description': 'HTTP interface for building Telegram bots.',
        'tags': ['api-design', 'reference'],
    },
    {
        'url': 'https://whapi.cloud/docs',
        'title': 'Whapi Cloud Documentation',
        'tags': ['api-design'],
        'is_archived': True,
    },
]


async def create_bookmarks(session: AsyncSession, user: User) -> None:
    """Create the sample bookmarks for a user."""
    for data in BOOKMARKS:
        await create_bookmark(session, user.id, BookmarkCreate(**data))
    logger.info('Created %d bookmarks', len(BOOKMARKS))


async def clear_data(session: AsyncSession) -> None:
    """Delete the dev user's bookmarks."""
    result = await session.execute(select(User).where(User.external_id == DEV_EXTERNAL_ID))
    user = result.scalar_one_or_none()
    if user is None:
        logger.info('No dev user found, nothing to clear.')
        return

    deleted = await session.execute(delete(Bookmark).where(Bookmark.user_id == user.id))
    logger.info('Deleted %d bookmarks for dev user %s', deleted.rowcount, user.id)


async def _run(action: Callable[[AsyncSession], Awaitable[None]]) -> None:
    """Run an async action in a committed session, creating tables first."""
    settings = get_settings()
    engine = build_engine(settings.database_url)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await init_db(engine)

    async with session_factory() as session:
        try:
            await action(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await engine.dispose()


async def populate(force: bool = False, telegram_id: str | None = None) -> None:
    """Create the dev user with sample bookmarks, optionally linking a Telegram id."""

    async def _populate(session: AsyncSession) -> None:
        user = await get_or_create_dev_user(session)
        existing = await session.execute(
            select(Bookmark.id).where(Bookmark.user_id == user.id).limit(1),
        )
        if existing.first() is not None:
            if not force:
                logger.info('Dev user already has bookmarks. Use --force to clear and re-seed.')
                return
            await clear_data(session)
        await create_bookmarks(session, user)
        if telegram_id:
            await link_identity(session, user, 'telegram', telegram_id)
        logger.info('Seed data created successfully.')

    await _run(_populate)


async def clear() -> None:
    """Clear all dev user data."""
    await _run(clear_data)


async def issue_token(external_id: str, name: str, email: str | None) -> None:
    """Create (if needed) an account and print a new personal access token for it."""

    async def _issue(session: AsyncSession) -> None:
        user = await get_or_create_user(session, external_id=external_id, email=email)
        _, plaintext = await create_token(session, user.id, name)
        print(f'Token for user {user.id} ({external_id}): {plaintext}')
        print('Store it now - it cannot be shown again.')

    await _run(_issue)


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    parser = argparse.ArgumentParser(description='Seed the dev database or issue API tokens.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    populate_parser = subparsers.add_parser('populate', help='Populate database with test data')
    populate_parser.add_argument(
        '--force', action='store_true',
        help='Clear existing data before populating',
    )
    populate_parser.add_argument(
        '--telegram-id',
        help='Telegram user id to link to the dev user',
    )

    subparsers.add_parser('clear', help='Remove all dev user data')

    token_parser = subparsers.add_parser('create-token', help='Issue a personal access token')
    token_parser.add_argument('--external-id', required=True, help='Account identifier')
    token_parser.add_argument('--name', default='CLI', help='Token name')
    token_parser.add_argument('--email', default=None, help='Account email')

    args = parser.parse_args()

    if args.command in ('populate', 'clear') and not get_settings().dev_mode:
        parser.error('populate/clear require DEV_MODE=true (local dev database only)')

    if args.command == 'populate':
        asyncio.run(populate(force=args.force, telegram_id=args.telegram_id))
    elif args.command == 'clear':
        asyncio.run(clear())
    elif args.command == 'create-token':
        asyncio.run(issue_token(args.external_id, args.name, args.email))


if __name__ == '__main__':
    main()
