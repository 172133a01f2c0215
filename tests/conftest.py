"""
Test infrastructure for the article API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after.
- The Redis cache is disabled by setting cache._redis = None.
- Auth cookies are issued for Domain=localhost and marked Secure, so the
  client's cookie jar (base_url http://test) never stores them.  HTTP tests
  read them from the Set-Cookie headers and send them back explicitly in a
  Cookie header.
- The signing secret has no default, so it is set in the environment
  before the settings module is imported.
"""
import os

os.environ["AUTH_JWT_SECRET_KEY"] = "test-secret-" + "x" * 52

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from article_api.cache import cache
from article_api.database import Base, get_db
from article_api.main import app
from article_api.middleware import install_query_counter
from article_api.security import hash_password
from article_api.store import user_store

from helpers import PASSWORD, cookie_header, session_cookies


# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise

app.dependency_overrides[get_db] = override_get_db

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Live session for store-level tests."""
    async with async_session_test() as session:
        yield session

@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

@pytest.fixture
def register(async_client: AsyncClient):
    """
    Register a user through the API and return the ``Cookie`` header that
    authenticates as them.
    """

    async def _register(username: str, **overrides) -> dict[str, str]:
        payload = {
            "username": username,
            "email": f"{username}@example.com",
            "password": PASSWORD,
            "name": f"{username} name",
        }
        payload.update(overrides)
        resp = await async_client.post("/api/v1/register", json=payload)
        assert resp.status_code == 201, resp.text
        return cookie_header(session_cookies(resp))

    return _register

@pytest.fixture
def make_user(db_session: AsyncSession):
    """Insert a user directly through the store."""
    password_hash = hash_password(PASSWORD)

    async def _make_user(username: str, **overrides):
        values = {
            "username": username,
            "email": f"{username}@example.com",
            "password": password_hash,
            "name": f"{username} name",
        }
        values.update(overrides)
        user = await user_store.create(db_session, values)
        await db_session.commit()
        return user

    return _make_user
