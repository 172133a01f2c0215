import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from article_api.config import settings
from article_api.errors import DatabaseUnavailableError
from article_api.middleware import install_query_counter

logger = logging.getLogger(__name__)

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """
    Yield one session per request.

    The session is the request's single transaction: every store call made
    while handling the request shares it, the whole unit commits when the
    handler returns, and any exception (including cancellation) rolls it
    back so no partial write becomes visible.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


async def wait_for_database(
    target: AsyncEngine,
    attempts: int = settings.DB_CONNECT_ATTEMPTS,
    backoff: float = settings.DB_CONNECT_BACKOFF,
) -> None:
    """
    Block until *target* answers ``SELECT 1``.

    Only used at process bootstrap: each failed attempt is logged and
    retried after a fixed *backoff* (seconds).  Raises
    ``DatabaseUnavailableError`` once *attempts* are exhausted.
    """
    last_exc: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            async with target.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database reachable after %d attempt(s)", attempt)
            return
        except Exception as exc:
            last_exc = exc
            logger.warning("Database connection attempt %d/%d failed: %s", attempt, attempts, exc)
            if attempt < attempts:
                await asyncio.sleep(backoff)
    raise DatabaseUnavailableError(
        f"database unreachable after {attempts} attempt(s)"
    ) from last_exc
