"""
Partial-overwrite patches for users and articles.

A patch carries optional fields; ``None`` and ``""`` both mean "not
supplied".  The ``merge_*`` functions are pure: they read the current
entity, overlay the supplied fields and return a new dict of column values
without touching the ORM instance, so a rejected update leaves the loaded
entity unchanged.
"""
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict

from article_api.models import Article, User

USER_PATCH_FIELDS = ("username", "email", "password", "name", "bio", "image")
ARTICLE_PATCH_FIELDS = ("title", "description", "body")


class UserPatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str | None = None
    email: str | None = None
    password: str | None = None
    name: str | None = None
    bio: str | None = None
    image: str | None = None


class ArticlePatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str | None = None
    description: str | None = None
    body: str | None = None


class MergedUser(NamedTuple):
    values: dict[str, Any]
    # True when the patch carried a new plaintext password that must be
    # validated and hashed before the values are persisted.
    password_changed: bool


def _supplied(patch: BaseModel, fields: tuple[str, ...]) -> dict[str, Any]:
    return {f: getattr(patch, f) for f in fields if getattr(patch, f)}


def merge_user(user: User, patch: UserPatch) -> MergedUser:
    values = {f: getattr(user, f) for f in USER_PATCH_FIELDS}
    changes = _supplied(patch, USER_PATCH_FIELDS)
    values.update(changes)
    return MergedUser(values=values, password_changed="password" in changes)


def merge_article(article: Article, patch: ArticlePatch) -> dict[str, Any]:
    values = {f: getattr(article, f) for f in ARTICLE_PATCH_FIELDS}
    values.update(_supplied(patch, ARTICLE_PATCH_FIELDS))
    values["user_id"] = article.user_id
    return values
