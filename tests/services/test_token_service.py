"""Tests for personal access tokens."""
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from services.token_service import create_token, generate_token, hash_token, validate_token


def test__generate_token__format() -> None:
    plaintext, token_hash, prefix = generate_token()

    assert plaintext.startswith("bm_")
    assert prefix == plaintext[:12]
    assert token_hash == hash_token(plaintext)
    assert token_hash != plaintext


async def test__validate_token__known_token_records_use(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    api_token, plaintext = await create_token(db_session, test_user.id, "CLI")
    assert api_token.last_used_at is None

    validated = await validate_token(db_session, plaintext)

    assert validated is not None
    assert validated.id == api_token.id
    assert validated.last_used_at is not None


async def test__validate_token__unknown_token(db_session: AsyncSession) -> None:
    assert await validate_token(db_session, "bm_not-a-real-token") is None
