"""Pytest fixtures for testing."""
import os
from collections.abc import AsyncGenerator, Generator

# Settings are validated when the app modules are imported, so the database URL
# must be in the environment before any app import below.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

import pytest  # noqa: E402
import respx  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from core.config import Settings  # noqa: E402
from models import Base, Bookmark, User  # noqa: E402

TELEGRAM_BOT_TOKEN = "test-bot-token"
WHAPI_API_TOKEN = "test-whapi-token"
GEMINI_API_KEY = "test-gemini-key"

TELEGRAM_SEND_URL = f"https://api.telegram.org/bot{TELEGRAM_BOT_TOKEN}/sendMessage"
WHAPI_SEND_URL = "https://gate.whapi.cloud/messages/text"
GEMINI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-2.0-flash-exp:generateContent"
)


def make_settings(**overrides: object) -> Settings:
    """Build settings for tests, ignoring any local .env file."""
    values: dict[str, object] = {
        "database_url": TEST_DATABASE_URL,
        "dev_mode": True,
        "telegram_bot_token": TELEGRAM_BOT_TOKEN,
        "whapi_api_token": WHAPI_API_TOKEN,
        "gemini_api_key": GEMINI_API_KEY,
        "frontend_url": "https://bookmarks.example.com",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    """Settings with every chat integration configured."""
    return make_settings()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create an in-memory SQLite engine with a fresh schema for each test.

    StaticPool keeps a single connection so every session sees the same database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create an async session bound to the test database."""
    session_factory = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """
    Create a user linked to Telegram id 1001 and WhatsApp number 15551234567.

    Committed so that a rollback inside the code under test doesn't remove it.
    """
    user = User(
        external_id="test-user-123",
        email="test@example.com",
        telegram_id="1001",
        phone_number="15551234567",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def add_bookmark(
    db_session: AsyncSession,
    user: User,
    title: str,
    url: str = "https://example.com/",
    **fields: object,
) -> Bookmark:
    """Insert and commit a bookmark for a user."""
    bookmark = Bookmark(user_id=user.id, title=title, url=url, tags=fields.pop("tags", []), **fields)
    db_session.add(bookmark)
    await db_session.commit()
    await db_session.refresh(bookmark)
    return bookmark


@pytest.fixture
def respx_mock() -> Generator[respx.MockRouter]:
    """Mock outbound HTTP calls (Telegram, Whapi, Gemini)."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
async def client(
    db_session: AsyncSession,
    settings: Settings,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session and settings overrides."""
    from api.main import app
    from core.config import get_settings
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = lambda: settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
