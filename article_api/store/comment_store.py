"""
Comment store — comments scoped to an article.

The store only enforces existence and referential integrity.  Whether the
acting user may delete a comment, and whether the comment belongs to the
article named in the request path, is decided by the caller before
``delete`` is reached.
"""
from typing import Any, Mapping

from sqlalchemy import exists, select
from sqlalchemy import delete as sa_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from article_api.errors import NotFoundError
from article_api.models import Article, Comment


async def _ensure_article_exists(db: AsyncSession, article_id: int) -> None:
    found = (await db.execute(select(exists().where(Article.id == article_id)))).scalar()
    if not found:
        raise NotFoundError("article not found")


async def create(db: AsyncSession, values: Mapping[str, Any]) -> Comment:
    """
    Append a comment to an article and return it with its author loaded.

    Raises ``NotFoundError`` when the target article does not exist.
    """
    await _ensure_article_exists(db, values["article_id"])
    comment = Comment(
        body=values["body"],
        user_id=values["user_id"],
        article_id=values["article_id"],
    )
    db.add(comment)
    await db.flush()
    return await get_by_id(db, comment.id)


async def get_comments(db: AsyncSession, article_id: int) -> list[Comment]:
    """Return an article's comments, oldest first."""
    await _ensure_article_exists(db, article_id)
    q = (
        select(Comment)
        .where(Comment.article_id == article_id)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    result = await db.execute(q)
    return list(result.unique().scalars().all())


async def get_by_id(db: AsyncSession, comment_id: int) -> Comment:
    q = (
        select(Comment)
        .where(Comment.id == comment_id)
        .options(joinedload(Comment.author))
        .execution_options(populate_existing=True)
    )
    comment = (await db.execute(q)).unique().scalar_one_or_none()
    if comment is None:
        raise NotFoundError("comment not found")
    return comment


async def delete(db: AsyncSession, comment: Comment) -> None:
    result = await db.execute(
        sa_delete(Comment)
        .where(Comment.id == comment.id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("comment not found")
    db.expunge(comment)
