"""
Article store — articles, tags and the favorite relation.

Design notes
------------
- Eager loading via ``joinedload`` (many-to-one: author) and
  ``selectinload`` (many-to-many: tags) is used throughout to eliminate
  N+1 queries.  The ``unique()`` call is required after any query that
  uses ``joinedload`` to deduplicate the joined rows.
- Tags are upserted by their unique name with ``INSERT ... ON CONFLICT DO
  NOTHING`` followed by a SELECT, so two articles created concurrently
  with the same new tag never produce a duplicate row or an
  ``IntegrityError``.
- ``favorites_count`` is only ever changed with a relative
  ``favorites_count = favorites_count +/- 1`` UPDATE issued after the
  favorite row was really inserted/deleted; concurrent (un)favorites of
  the same article by different users cannot lose an update and the
  counter always equals the relation's row count.
- Functions flush but do not commit; the transaction boundary is owned by
  the ``get_db`` dependency in the router layer, so a multi-statement
  write (create with tags, favorite + counter, cascade delete) commits or
  rolls back as a whole.
"""
import logging
from typing import Any, Iterable, Mapping, NamedTuple

from sqlalchemy import exists, func, select
from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.attributes import set_committed_value

from article_api.errors import NotFoundError
from article_api.models import Article, Comment, Tag, User, article_tags, favorite_articles
from article_api.store.statements import insert_ignoring_conflicts

logger = logging.getLogger(__name__)

ARTICLE_COLUMNS = ("title", "description", "body")


class FavoriteResult(NamedTuple):
    relation_changed: bool
    favorites_count: int


class CounterMismatch(NamedTuple):
    article_id: int
    favorites_count: int
    favorite_rows: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _with_relations(q):
    return q.options(joinedload(Article.author), selectinload(Article.tags))


def _dedupe(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(n.strip() for n in names if n and n.strip()))


async def _upsert_tags(db: AsyncSession, tag_names: list[str]) -> list[Tag]:
    """
    Return Tag ORM instances for each name in *tag_names*, creating any
    that do not yet exist.  All inserts run within the caller's
    transaction.
    """
    for name in tag_names:
        await db.execute(insert_ignoring_conflicts(db, Tag.__table__).values(name=name))
    result = await db.execute(select(Tag).where(Tag.name.in_(tag_names)))
    return list(result.scalars().all())


async def _favorites_count(db: AsyncSession, article_id: int) -> int:
    count = (
        await db.execute(select(Article.favorites_count).where(Article.id == article_id))
    ).scalar_one_or_none()
    if count is None:
        raise NotFoundError("article not found")
    return count


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------

async def create(
    db: AsyncSession, values: Mapping[str, Any], tag_names: Iterable[str]
) -> Article:
    """
    Insert an article and its tag associations, creating any tag that does
    not exist yet, and return the fully loaded article.

    *values* carries ``title``, ``description``, ``body`` and ``user_id``
    and must already be validated.
    """
    tags = await _upsert_tags(db, _dedupe(tag_names))
    article = Article(
        title=values["title"],
        description=values.get("description") or "",
        body=values["body"],
        user_id=values["user_id"],
        favorites_count=0,
    )
    article.tags.extend(tags)
    db.add(article)
    await db.flush()
    logger.debug("created article %d with tags %s", article.id, [t.name for t in tags])
    return await get_by_id(db, article.id)


async def get_by_id(db: AsyncSession, article_id: int) -> Article:
    """Return the article with its author and tags loaded."""
    q = (
        _with_relations(select(Article))
        .where(Article.id == article_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    article = result.unique().scalar_one_or_none()
    if article is None:
        raise NotFoundError("article not found")
    return article


async def update(db: AsyncSession, article: Article, values: Mapping[str, Any]) -> Article:
    """
    Overwrite title, description and body of *article* with *values*.

    Tags and author are immutable and ignored if present in *values*.
    """
    columns = {c: values[c] for c in ARTICLE_COLUMNS if c in values}
    result = await db.execute(
        sa_update(Article)
        .where(Article.id == article.id)
        .values(**columns, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("article not found")
    return await get_by_id(db, article.id)


async def get_articles(
    db: AsyncSession,
    tag: str | None = None,
    username: str | None = None,
    favorited_by: User | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Article]:
    """
    Return articles matching every supplied filter, most recent first.

    - *tag*: the article carries a tag with this name.
    - *username*: the article was written by this user.
    - *favorited_by*: the article was favorited by this user.
    """
    q = _with_relations(select(Article))
    if tag:
        q = q.where(Article.tags.any(Tag.name == tag))
    if username:
        q = q.where(Article.author.has(User.username == username))
    if favorited_by is not None:
        q = q.where(
            exists().where(
                favorite_articles.c.article_id == Article.id,
                favorite_articles.c.user_id == favorited_by.id,
            )
        )
    q = q.order_by(Article.created_at.desc(), Article.id.desc()).offset(offset).limit(limit)
    result = await db.execute(q)
    return list(result.unique().scalars().all())


async def get_feed_articles(
    db: AsyncSession, author_ids: Iterable[int], limit: int = 20, offset: int = 0
) -> list[Article]:
    """Return articles written by any of *author_ids*, most recent first."""
    author_ids = list(author_ids)
    if not author_ids:
        return []
    q = (
        _with_relations(select(Article))
        .where(Article.user_id.in_(author_ids))
        .order_by(Article.created_at.desc(), Article.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(q)
    return list(result.unique().scalars().all())


async def delete(db: AsyncSession, article: Article) -> None:
    """
    Delete *article* with its comments, favorite relations and tag
    associations.  Tags themselves are kept.
    """
    await db.execute(
        sa_delete(Comment)
        .where(Comment.article_id == article.id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(sa_delete(favorite_articles).where(favorite_articles.c.article_id == article.id))
    await db.execute(sa_delete(article_tags).where(article_tags.c.article_id == article.id))
    result = await db.execute(
        sa_delete(Article)
        .where(Article.id == article.id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("article not found")
    db.expunge(article)
    logger.debug("deleted article %d", article.id)


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

async def is_favorited(db: AsyncSession, article: Article, user: User | None) -> bool:
    """Return whether *user* favorited *article*; False for no user."""
    if user is None:
        return False
    q = select(
        exists().where(
            favorite_articles.c.article_id == article.id,
            favorite_articles.c.user_id == user.id,
        )
    )
    return bool((await db.execute(q)).scalar())


async def _shift_favorites_count(db: AsyncSession, article: Article, delta: int) -> int:
    """Apply *delta* to the counter and touch ``updated_at`` in one statement."""
    table = Article.__table__
    row = (
        await db.execute(
            sa_update(table)
            .where(table.c.id == article.id)
            .values(favorites_count=table.c.favorites_count + delta, updated_at=func.now())
            .returning(table.c.favorites_count, table.c.updated_at)
        )
    ).one_or_none()
    if row is None:
        raise NotFoundError("article not found")
    # Keep the loaded instance in step without marking it dirty.
    set_committed_value(article, "favorites_count", row.favorites_count)
    set_committed_value(article, "updated_at", row.updated_at)
    return row.favorites_count


async def add_favorite(db: AsyncSession, article: Article, user: User) -> FavoriteResult:
    """
    Mark *article* as favorited by *user* and bump its counter.

    Favoriting twice is a no-op reported with ``relation_changed=False``.
    """
    result = await db.execute(
        insert_ignoring_conflicts(db, favorite_articles).values(
            user_id=user.id, article_id=article.id
        )
    )
    if result.rowcount != 1:
        return FavoriteResult(False, await _favorites_count(db, article.id))
    count = await _shift_favorites_count(db, article, +1)
    logger.debug("user %d favorited article %d (count=%d)", user.id, article.id, count)
    return FavoriteResult(True, count)


async def delete_favorite(db: AsyncSession, article: Article, user: User) -> FavoriteResult:
    """
    Remove *user*'s favorite from *article* and decrement its counter.

    Removing a favorite that does not exist is a no-op reported with
    ``relation_changed=False``.
    """
    result = await db.execute(
        sa_delete(favorite_articles).where(
            favorite_articles.c.article_id == article.id,
            favorite_articles.c.user_id == user.id,
        )
    )
    if result.rowcount != 1:
        return FavoriteResult(False, await _favorites_count(db, article.id))
    count = await _shift_favorites_count(db, article, -1)
    logger.debug("user %d unfavorited article %d (count=%d)", user.id, article.id, count)
    return FavoriteResult(True, count)


async def get_counter_mismatches(db: AsyncSession) -> list[CounterMismatch]:
    """Return articles whose ``favorites_count`` differs from their favorite rows."""
    rows = (
        select(favorite_articles.c.article_id, func.count().label("n"))
        .group_by(favorite_articles.c.article_id)
        .subquery()
    )
    actual = func.coalesce(rows.c.n, 0)
    q = (
        select(Article.id, Article.favorites_count, actual)
        .outerjoin(rows, rows.c.article_id == Article.id)
        .where(Article.favorites_count != actual)
        .order_by(Article.id)
    )
    return [CounterMismatch(*row) for row in (await db.execute(q)).all()]


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

async def get_tags(db: AsyncSession) -> list[str]:
    result = await db.execute(select(Tag.name).order_by(Tag.name))
    return list(result.scalars().all())
