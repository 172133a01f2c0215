from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.cache import cache
from article_api.config import API_PREFIX
from article_api.database import get_db
from article_api.models import Article, Comment, Tag, User, favorite_articles, follows
from article_api.schemas import CounterMismatchResponse, DiagnosticsResponse
from article_api.store import article_store

router = APIRouter(prefix=f"{API_PREFIX}/diagnostics", tags=["diagnostics"])


async def _count(db: AsyncSession, table) -> int:
    return (await db.execute(select(func.count()).select_from(table))).scalar_one()


@router.get("", response_model=DiagnosticsResponse)
async def get_diagnostics(db: AsyncSession = Depends(get_db)):
    mismatches = await article_store.get_counter_mismatches(db)
    return DiagnosticsResponse(
        total_users=await _count(db, User),
        total_articles=await _count(db, Article),
        total_comments=await _count(db, Comment),
        total_tags=await _count(db, Tag),
        total_follows=await _count(db, follows),
        total_favorites=await _count(db, favorite_articles),
        favorites_count_mismatches=[CounterMismatchResponse(**m._asdict()) for m in mismatches],
        cache_info=cache.stats,
    )
