"""
User store — users and the follow relation.

Lookups raise ``NotFoundError`` for a missing row so callers can tell
"no such user" apart from a database failure, which propagates unchanged.
"""
import logging
from typing import Any, Mapping

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.errors import ConflictError, NotFoundError, ValidationError
from article_api.models import User, follows
from article_api.store.statements import insert_ignoring_conflicts

logger = logging.getLogger(__name__)

USER_COLUMNS = ("username", "email", "password", "name", "bio", "image")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def _get_one(db: AsyncSession, *criteria) -> User:
    result = await db.execute(select(User).where(*criteria))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("user not found")
    return user


async def get_by_id(db: AsyncSession, user_id: int) -> User:
    return await _get_one(db, User.id == user_id)


async def get_by_email(db: AsyncSession, email: str) -> User:
    return await _get_one(db, User.email == email)


async def get_by_username(db: AsyncSession, username: str) -> User:
    return await _get_one(db, User.username == username)


async def _ensure_unique(
    db: AsyncSession, username: str, email: str, exclude_id: int | None = None
) -> None:
    q = select(User.username, User.email).where(
        or_(User.username == username, User.email == email)
    )
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    taken = (await db.execute(q)).first()
    if taken is None:
        return
    if taken.username == username:
        raise ConflictError("username has already been taken")
    raise ConflictError("email has already been taken")


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create(db: AsyncSession, values: Mapping[str, Any]) -> User:
    """
    Insert a user and return it with its generated id and timestamps.

    *values* must already be validated and carry a hashed password.
    Username and email uniqueness is enforced by the schema; a duplicate
    raises ``ConflictError``.
    """
    await _ensure_unique(db, values["username"], values["email"])

    user = User(**{c: values.get(c) or "" for c in USER_COLUMNS})
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        # A concurrent registration won the race between check and insert.
        raise ConflictError("username or email has already been taken") from exc
    await db.refresh(user)
    return user


async def update(db: AsyncSession, user_id: int, values: Mapping[str, Any]) -> User:
    """
    Overwrite the user's columns with *values* in a single UPDATE and
    return the row as stored, including the refreshed ``updated_at``.
    """
    columns = {c: values[c] for c in USER_COLUMNS if c in values}
    if "username" in columns or "email" in columns:
        current = await get_by_id(db, user_id)
        await _ensure_unique(
            db,
            columns.get("username", current.username),
            columns.get("email", current.email),
            exclude_id=user_id,
        )

    stmt = (
        sa_update(User)
        .where(User.id == user_id)
        .values(**columns, updated_at=func.now())
        .returning(User)
    )
    try:
        result = await db.execute(stmt)
    except IntegrityError as exc:
        raise ConflictError("username or email has already been taken") from exc
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("user not found")
    await db.refresh(user)
    return user


# ---------------------------------------------------------------------------
# Follow relation
# ---------------------------------------------------------------------------

async def is_following(db: AsyncSession, a: User | None, b: User | None) -> bool:
    """Return whether *a* follows *b*; False when either side is absent."""
    if a is None or b is None:
        return False
    q = select(
        exists().where(follows.c.from_user_id == a.id, follows.c.to_user_id == b.id)
    )
    return bool((await db.execute(q)).scalar())


async def follow(db: AsyncSession, a: User, b: User) -> bool:
    """
    Record that *a* follows *b*.

    Returns False (and changes nothing) when the relation already exists.
    """
    if a.id == b.id:
        raise ValidationError("cannot follow yourself")
    stmt = insert_ignoring_conflicts(db, follows).values(from_user_id=a.id, to_user_id=b.id)
    result = await db.execute(stmt)
    changed = result.rowcount == 1
    logger.debug("follow %d -> %d (changed=%s)", a.id, b.id, changed)
    return changed


async def unfollow(db: AsyncSession, a: User, b: User) -> bool:
    """
    Remove the relation *a* follows *b*.

    Returns False (and changes nothing) when there was no such relation.
    """
    stmt = delete(follows).where(
        follows.c.from_user_id == a.id, follows.c.to_user_id == b.id
    )
    result = await db.execute(stmt)
    changed = result.rowcount == 1
    logger.debug("unfollow %d -> %d (changed=%s)", a.id, b.id, changed)
    return changed


async def get_following_user_ids(db: AsyncSession, user: User) -> list[int]:
    q = (
        select(follows.c.to_user_id)
        .where(follows.c.from_user_id == user.id)
        .order_by(follows.c.to_user_id)
    )
    return list((await db.execute(q)).scalars().all())
