import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.cache import cache
from article_api.config import API_PREFIX
from article_api.database import get_db
from article_api.dependencies import PaginationParams, get_current_user, get_optional_user
from article_api.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from article_api.models import Article, User
from article_api.patches import ArticlePatch, merge_article
from article_api.schemas import ArticleResponse, ArticlesResponse, CreateArticleRequest
from article_api.store import article_store, user_store
from article_api.validation import validate_article

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/articles", tags=["articles"])


async def _to_response(db: AsyncSession, article: Article, viewer: User | None) -> ArticleResponse:
    favorited = await article_store.is_favorited(db, article, viewer)
    following = await user_store.is_following(db, viewer, article.author)
    return ArticleResponse.from_article(article, favorited, following)


async def _to_list_response(
    db: AsyncSession, articles: list[Article], viewer: User | None
) -> ArticlesResponse:
    items = [await _to_response(db, a, viewer) for a in articles]
    return ArticlesResponse(articles=items, articles_count=len(items))


async def _get_owned_article(db: AsyncSession, article_id: int, user: User, action: str) -> Article:
    article = await article_store.get_by_id(db, article_id)
    if article.user_id != user.id:
        logger.warning("user %d attempted to %s article %d", user.id, action, article_id)
        raise ForbiddenError("forbidden")
    return article


@router.get("", response_model=ArticlesResponse)
async def list_articles(
    tag: str | None = Query(None, description="Only articles carrying this tag."),
    username: str | None = Query(None, description="Only articles written by this user."),
    favorited: str | None = Query(None, description="Only articles favorited by this user."),
    pagination: PaginationParams = Depends(),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("get articles")
    favorited_by = None
    if favorited:
        try:
            favorited_by = await user_store.get_by_username(db, favorited)
        except NotFoundError:
            # Nobody by that name, so nothing they favorited.
            return ArticlesResponse(articles=[], articles_count=0)

    articles = await article_store.get_articles(
        db, tag, username, favorited_by, pagination.limit, pagination.offset
    )
    return await _to_list_response(db, articles, viewer)


@router.get("/feed", response_model=ArticlesResponse)
async def feed_articles(
    pagination: PaginationParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("get feed articles")
    author_ids = await user_store.get_following_user_ids(db, current_user)
    articles = await article_store.get_feed_articles(
        db, author_ids, pagination.limit, pagination.offset
    )
    items = [
        ArticleResponse.from_article(
            a, await article_store.is_favorited(db, a, current_user), following=True
        )
        for a in articles
    ]
    return ArticlesResponse(articles=items, articles_count=len(items))


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: int,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("get article")
    article = await article_store.get_by_id(db, article_id)
    return await _to_response(db, article, viewer)


@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: CreateArticleRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("create article")
    values = {
        "title": data.title,
        "description": data.description,
        "body": data.body,
        "user_id": current_user.id,
    }
    violations = validate_article(values, data.tags)
    if violations:
        raise ValidationError(violations)

    article = await article_store.create(db, values, data.tags)
    # Commit before dropping the cached tags, or a concurrent read could
    # cache the pre-commit list again.
    await db.commit()
    await cache.invalidate_tags()
    return ArticleResponse.from_article(article)


@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: int,
    patch: ArticlePatch,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("update article")
    article = await _get_owned_article(db, article_id, current_user, "update")

    values = merge_article(article, patch)
    violations = validate_article(values)
    if violations:
        raise ValidationError(violations)

    updated = await article_store.update(db, article, values)
    favorited = await article_store.is_favorited(db, updated, current_user)
    return ArticleResponse.from_article(updated, favorited)


@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("delete article")
    article = await _get_owned_article(db, article_id, current_user, "delete")
    await article_store.delete(db, article)


@router.post("/{article_id}/favorite", response_model=ArticleResponse)
async def favorite_article(
    article_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("favorite article")
    article = await article_store.get_by_id(db, article_id)
    result = await article_store.add_favorite(db, article, current_user)
    if not result.relation_changed:
        logger.warning("user %d already favorited article %d", current_user.id, article_id)
        raise ConflictError("you have already favorited the article")
    following = await user_store.is_following(db, current_user, article.author)
    return ArticleResponse.from_article(
        article, favorited=True, following=following, favorites_count=result.favorites_count
    )


@router.delete("/{article_id}/favorite", response_model=ArticleResponse)
async def unfavorite_article(
    article_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("unfavorite article")
    article = await article_store.get_by_id(db, article_id)
    result = await article_store.delete_favorite(db, article, current_user)
    if not result.relation_changed:
        logger.warning("user %d has not favorited article %d", current_user.id, article_id)
        raise ConflictError("you have not favorited the article")
    following = await user_store.is_following(db, current_user, article.author)
    return ArticleResponse.from_article(
        article, favorited=False, following=following, favorites_count=result.favorites_count
    )
