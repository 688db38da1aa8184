"""Service layer for API token (PAT) operations."""
import hashlib
import secrets
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.api_token import ApiToken


def generate_token() -> tuple[str, str, str]:
    """
    Generate a secure API token.

    Returns:
        Tuple of (plaintext_token, token_hash, token_prefix).
        The plaintext should only be shown once at creation.
    """
    raw = secrets.token_urlsafe(32)
    plaintext = f"bm_{raw}"
    token_hash = hash_token(plaintext)
    token_prefix = plaintext[:12]  # "bm_" + first 9 chars of raw
    return plaintext, token_hash, token_prefix


def hash_token(token: str) -> str:
    """Hash a token for comparison against stored hashes."""
    return hashlib.sha256(token.encode()).hexdigest()


async def create_token(
    db: AsyncSession,
    user_id: int,
    name: str,
) -> tuple[ApiToken, str]:
    """
    Create a new API token for a user.

    Returns:
        Tuple of (ApiToken model, plaintext_token).
        The plaintext token is only available at creation time.

    Note:
        Does not commit. Caller handles commit.
    """
    plaintext, token_hash, token_prefix = generate_token()
    api_token = ApiToken(
        user_id=user_id,
        name=name,
        token_hash=token_hash,
        token_prefix=token_prefix,
    )
    db.add(api_token)
    await db.flush()
    await db.refresh(api_token)
    return api_token, plaintext


async def validate_token(db: AsyncSession, token: str) -> ApiToken | None:
    """
    Look up a plaintext token and record its use.

    Returns:
        The matching ApiToken, or None if the token is unknown.
    """
    result = await db.execute(
        select(ApiToken).where(ApiToken.token_hash == hash_token(token)),
    )
    api_token = result.scalar_one_or_none()
    if api_token is None:
        return None

    api_token.last_used_at = datetime.now(UTC)
    await db.flush()
    return api_token
