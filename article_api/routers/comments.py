import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.config import API_PREFIX
from article_api.database import get_db
from article_api.dependencies import get_current_user, get_optional_user
from article_api.errors import ForbiddenError, ValidationError
from article_api.models import User
from article_api.schemas import CommentResponse, CommentsResponse, CreateCommentRequest
from article_api.store import comment_store, user_store
from article_api.validation import validate_comment

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_PREFIX}/articles/{{article_id}}/comments", tags=["comments"])


@router.get("", response_model=CommentsResponse)
async def list_comments(
    article_id: int,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("get comments")
    comments = await comment_store.get_comments(db, article_id)
    return CommentsResponse(
        comments=[
            CommentResponse.from_comment(c, await user_store.is_following(db, viewer, c.author))
            for c in comments
        ]
    )


@router.post("", status_code=201, response_model=CommentResponse)
async def create_comment(
    article_id: int,
    data: CreateCommentRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("create comment")
    values = {"body": data.body, "user_id": current_user.id, "article_id": article_id}
    violations = validate_comment(values)
    if violations:
        raise ValidationError(violations)

    comment = await comment_store.create(db, values)
    return CommentResponse.from_comment(comment)


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    article_id: int,
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    logger.info("delete comment")
    comment = await comment_store.get_by_id(db, comment_id)
    if comment.article_id != article_id:
        logger.warning("comment %d does not belong to article %d", comment_id, article_id)
        raise ValidationError("the comment is not from this article")
    # Only the comment's author may delete it, not the article's author.
    if comment.user_id != current_user.id:
        logger.warning("user %d attempted to delete comment %d", current_user.id, comment_id)
        raise ForbiddenError("forbidden")

    await comment_store.delete(db, comment)
