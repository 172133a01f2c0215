from functools import lru_cache

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.auth import TokenService, Viewer, set_context_user_id
from article_api.config import settings
from article_api.database import get_db
from article_api.errors import NotFoundError
from article_api.models import User
from article_api.store import user_store


class PaginationParams:
    """
    Reusable FastAPI dependency that parses ``limit`` / ``offset`` query
    parameters.

    Attributes
    ----------
    limit:
        Maximum number of items returned, clamped to
        ``settings.MAX_PAGE_SIZE`` regardless of the value supplied.
    offset:
        Number of items skipped from the start of the ordered result.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of items returned (max 100).",
        ),
        offset: int = Query(
            0,
            ge=0,
            description="Number of items skipped.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_PAGE_SIZE)
        self.offset = offset


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service; raises ``ConfigurationError`` without a secret."""
    return TokenService(settings.AUTH_JWT_SECRET_KEY, settings.AUTH_COOKIE_DOMAIN)


# ---------------------------------------------------------------------------
# Auth gates
# ---------------------------------------------------------------------------

async def optional_viewer(
    request: Request, tokens: TokenService = Depends(get_token_service)
) -> Viewer:
    """Anonymous access allowed; a present but invalid token is still rejected."""
    return set_context_user_id(request, tokens.extract_user_id(request, strict=False))


async def require_viewer(
    request: Request, tokens: TokenService = Depends(get_token_service)
) -> Viewer:
    return set_context_user_id(request, tokens.extract_user_id(request, strict=True))


async def _load_viewer(db: AsyncSession, viewer: Viewer) -> User:
    try:
        return await user_store.get_by_id(db, viewer.user_id)
    except NotFoundError:
        raise NotFoundError("current user not found")


async def get_current_user(
    viewer: Viewer = Depends(require_viewer), db: AsyncSession = Depends(get_db)
) -> User:
    return await _load_viewer(db, viewer)


async def get_optional_user(
    viewer: Viewer = Depends(optional_viewer), db: AsyncSession = Depends(get_db)
) -> User | None:
    if not viewer.is_authenticated:
        return None
    return await _load_viewer(db, viewer)
