import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.auth import TokenService
from article_api.config import API_PREFIX
from article_api.database import get_db
from article_api.dependencies import get_current_user, get_token_service
from article_api.errors import NotFoundError, ValidationError
from article_api.models import User
from article_api.patches import UserPatch, merge_user
from article_api.schemas import LoginRequest, ProfileResponse, RegisterRequest
from article_api.security import hash_password, verify_password
from article_api.store import user_store
from article_api.validation import validate_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["users"])


def _issue(tokens: TokenService, response: Response, user: User) -> None:
    tokens.attach_tokens(response, tokens.issue_token_pair(user.id), API_PREFIX)


@router.post("/login", response_model=ProfileResponse)
async def login(
    data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    logger.info("login")
    try:
        user = await user_store.get_by_email(db, data.email)
    except NotFoundError:
        logger.warning("login rejected: unknown email")
        raise ValidationError("invalid email or password")
    if not verify_password(data.password, user.password):
        logger.warning("login rejected: wrong password for user %d", user.id)
        raise ValidationError("invalid email or password")

    _issue(tokens, response, user)
    return ProfileResponse.from_user(user)


@router.post("/register", status_code=201, response_model=ProfileResponse)
async def register(
    data: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    logger.info("register")
    values = data.model_dump()
    violations = validate_user(values, plain_password=True)
    if violations:
        raise ValidationError(violations)

    values["password"] = hash_password(data.password)
    user = await user_store.create(db, values)

    _issue(tokens, response, user)
    return ProfileResponse.from_user(user)


@router.post("/refresh_token", response_model=ProfileResponse)
async def refresh_token(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    logger.info("refresh token")
    user_id = tokens.extract_user_id(request, strict=True, use_refresh_token=True)
    user = await user_store.get_by_id(db, user_id)

    _issue(tokens, response, user)
    return ProfileResponse.from_user(user)


@router.get("/me", response_model=ProfileResponse)
async def get_me(
    response: Response,
    current_user: User = Depends(get_current_user),
    tokens: TokenService = Depends(get_token_service),
):
    logger.info("get current user")
    _issue(tokens, response, current_user)
    return ProfileResponse.from_user(current_user)


@router.put("/me", response_model=ProfileResponse)
async def update_me(
    patch: UserPatch,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    logger.info("update current user")
    merged = merge_user(current_user, patch)
    violations = validate_user(merged.values, plain_password=merged.password_changed)
    if violations:
        raise ValidationError(violations)

    values = dict(merged.values)
    if merged.password_changed:
        values["password"] = hash_password(values["password"])
    user = await user_store.update(db, current_user.id, values)

    _issue(tokens, response, user)
    return ProfileResponse.from_user(user)
