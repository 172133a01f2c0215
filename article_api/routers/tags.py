import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.cache import cache
from article_api.config import API_PREFIX
from article_api.database import get_db
from article_api.schemas import TagsResponse
from article_api.store import article_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/tags", tags=["tags"])


@router.get("", response_model=TagsResponse)
async def list_tags(db: AsyncSession = Depends(get_db)):
    logger.info("get tags")
    tags = await cache.get_tags()
    if tags is None:
        tags = await article_store.get_tags(db)
        await cache.set_tags(tags)
    return TagsResponse(tags=tags)
