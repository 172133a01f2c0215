import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.config import API_PREFIX
from article_api.database import get_db
from article_api.dependencies import get_current_user
from article_api.errors import ConflictError, ValidationError
from article_api.models import User
from article_api.schemas import ProfileResponse
from article_api.store import user_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/profiles", tags=["profiles"])


@router.get("/{username}", response_model=ProfileResponse)
async def show_profile(
    username: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("show profile")
    user = await user_store.get_by_username(db, username)
    following = await user_store.is_following(db, current_user, user)
    return ProfileResponse.from_user(user, following)


@router.post("/{username}/follow", response_model=ProfileResponse)
async def follow_user(
    username: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("follow user")
    if current_user.username == username:
        raise ValidationError("cannot follow yourself")

    user = await user_store.get_by_username(db, username)
    if await user_store.is_following(db, current_user, user):
        logger.warning("user %d already follows user %d", current_user.id, user.id)
        raise ConflictError("you are already following the user")

    await user_store.follow(db, current_user, user)
    return ProfileResponse.from_user(user, following=True)


@router.delete("/{username}/follow", response_model=ProfileResponse)
async def unfollow_user(
    username: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("unfollow user")
    if current_user.username == username:
        raise ValidationError("cannot unfollow yourself")

    user = await user_store.get_by_username(db, username)
    if not await user_store.is_following(db, current_user, user):
        logger.warning("user %d does not follow user %d", current_user.id, user.id)
        raise ConflictError("you are not following the user")

    await user_store.unfollow(db, current_user, user)
    return ProfileResponse.from_user(user, following=False)
