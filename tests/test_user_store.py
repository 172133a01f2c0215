"""
User store tests — exercise the store functions directly against the test
database, bypassing HTTP.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.errors import ConflictError, NotFoundError, ValidationError
from article_api.security import verify_password
from article_api.store import user_store

from helpers import PASSWORD


@pytest.mark.asyncio
async def test_create_assigns_id_and_timestamps(make_user):
    user = await make_user("alice")
    assert user.id >= 1
    assert user.created_at is not None
    assert user.bio == ""
    assert verify_password(PASSWORD, user.password)


@pytest.mark.asyncio
async def test_lookups(db_session: AsyncSession, make_user):
    user = await make_user("alice")
    assert (await user_store.get_by_id(db_session, user.id)).username == "alice"
    assert (await user_store.get_by_email(db_session, "alice@example.com")).id == user.id
    assert (await user_store.get_by_username(db_session, "alice")).id == user.id


@pytest.mark.asyncio
async def test_lookup_missing_user(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await user_store.get_by_id(db_session, 999)
    with pytest.raises(NotFoundError):
        await user_store.get_by_username(db_session, "nobody")


@pytest.mark.asyncio
async def test_duplicate_username_and_email_conflict(make_user):
    await make_user("alice")
    with pytest.raises(ConflictError, match="username"):
        await make_user("alice", email="other@example.com")
    with pytest.raises(ConflictError, match="email"):
        await make_user("alice2", email="alice@example.com")


@pytest.mark.asyncio
async def test_update_overwrites_columns(db_session: AsyncSession, make_user):
    user = await make_user("alice")
    values = {
        "username": "alice",
        "email": "alice@example.com",
        "password": user.password,
        "name": "Alice Renamed",
        "bio": "New bio",
        "image": "",
    }
    updated = await user_store.update(db_session, user.id, values)
    await db_session.commit()

    assert updated.name == "Alice Renamed"
    assert updated.bio == "New bio"
    assert updated.updated_at is not None


@pytest.mark.asyncio
async def test_update_to_taken_username_conflicts(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    await make_user("bobby")
    with pytest.raises(ConflictError):
        await user_store.update(db_session, alice.id, {"username": "bobby"})


@pytest.mark.asyncio
async def test_update_missing_user(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await user_store.update(db_session, 999, {"name": "Nobody here"})


@pytest.mark.asyncio
async def test_follow_lifecycle(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    bobby = await make_user("bobby")

    assert not await user_store.is_following(db_session, alice, bobby)
    assert await user_store.follow(db_session, alice, bobby) is True
    assert await user_store.is_following(db_session, alice, bobby)
    # Directed relation.
    assert not await user_store.is_following(db_session, bobby, alice)

    # Second follow is a no-op.
    assert await user_store.follow(db_session, alice, bobby) is False
    assert await user_store.get_following_user_ids(db_session, alice) == [bobby.id]

    assert await user_store.unfollow(db_session, alice, bobby) is True
    assert await user_store.unfollow(db_session, alice, bobby) is False
    assert not await user_store.is_following(db_session, alice, bobby)
    assert await user_store.get_following_user_ids(db_session, alice) == []


@pytest.mark.asyncio
async def test_self_follow_rejected(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    with pytest.raises(ValidationError):
        await user_store.follow(db_session, alice, alice)


@pytest.mark.asyncio
async def test_is_following_with_absent_side(db_session: AsyncSession, make_user):
    alice = await make_user("alice")
    assert await user_store.is_following(db_session, None, alice) is False
    assert await user_store.is_following(db_session, alice, None) is False
