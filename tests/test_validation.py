"""
Validation and patch-merge tests.  Pure functions, no database: ORM
instances are built transiently.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from article_api.models import Article, User
from article_api.patches import ArticlePatch, UserPatch, merge_article, merge_user
from article_api.validation import (
    ViolationKind,
    validate_article,
    validate_comment,
    validate_user,
)

VALID_USER = {
    "username": "alice.w",
    "email": "alice@example.com",
    "password": "Passw0rd!",
    "name": "Alice Wonder",
    "bio": "",
    "image": "",
}

VALID_ARTICLE = {
    "title": "Hello world",
    "description": "",
    "body": "Body text",
    "user_id": 1,
}


def _kinds(violations) -> dict[str, ViolationKind]:
    return {v.field: v.kind for v in violations}


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def test_valid_user_has_no_violations():
    assert validate_user(VALID_USER, plain_password=True) == []


def test_user_reports_every_violation_at_once():
    violations = validate_user(
        {"username": "", "email": "nope", "password": "", "name": "abc"},
        plain_password=True,
    )
    assert _kinds(violations) == {
        "username": ViolationKind.REQUIRED,
        "email": ViolationKind.TOO_SHORT,
        "password": ViolationKind.REQUIRED,
        "name": ViolationKind.TOO_SHORT,
    }


@pytest.mark.parametrize(
    "field,value,kind",
    [
        ("username", "a" * 101, ViolationKind.TOO_LONG),
        ("username", "_alice", ViolationKind.INVALID_FORMAT),
        ("username", "ali ce", ViolationKind.INVALID_FORMAT),
        ("email", "not-an-email", ViolationKind.INVALID_FORMAT),
        ("name", "n" * 101, ViolationKind.TOO_LONG),
        ("bio", "b" * 256, ViolationKind.TOO_LONG),
        ("image", "not a url", ViolationKind.INVALID_FORMAT),
        ("image", "https://example.com/" + "i" * 240, ViolationKind.TOO_LONG),
    ],
)
def test_user_field_rules(field, value, kind):
    values = dict(VALID_USER, **{field: value})
    assert _kinds(validate_user(values, plain_password=True)) == {field: kind}


@pytest.mark.parametrize(
    "password,missing",
    [
        ("passw0rd!", "one uppercase"),
        ("PASSW0RD!", "one lowercase"),
        ("Password!", "one number"),
        ("Passw0rdd", "one symbol or punctuation"),
    ],
)
def test_weak_password(password, missing):
    violations = validate_user(dict(VALID_USER, password=password), plain_password=True)
    assert len(violations) == 1
    assert violations[0].kind is ViolationKind.WEAK_PASSWORD
    assert missing in violations[0].message


def test_password_length_bounds():
    short = validate_user(dict(VALID_USER, password="Pa0!"), plain_password=True)
    long = validate_user(dict(VALID_USER, password="Pa0!" + "x" * 47), plain_password=True)
    assert _kinds(short) == {"password": ViolationKind.TOO_SHORT}
    assert _kinds(long) == {"password": ViolationKind.TOO_LONG}


def test_hashed_password_only_checked_for_presence():
    hashed = dict(VALID_USER, password="$argon2id$v=19$m=65536,t=3,p=4$abc$def")
    assert validate_user(hashed, plain_password=False) == []
    assert _kinds(validate_user(dict(VALID_USER, password=""), plain_password=False)) == {
        "password": ViolationKind.REQUIRED
    }


def test_valid_image_url_accepted():
    values = dict(VALID_USER, image="https://cdn.example.com/avatar.png")
    assert validate_user(values, plain_password=True) == []


# ---------------------------------------------------------------------------
# Articles and comments
# ---------------------------------------------------------------------------

def test_valid_article_with_tags():
    assert validate_article(VALID_ARTICLE, ["go", "python"]) == []


def test_article_update_skips_tag_rules():
    assert validate_article(VALID_ARTICLE) == []


def test_article_violations():
    violations = validate_article(
        {"title": "Hey", "description": "tiny", "body": "", "user_id": 0}, []
    )
    assert _kinds(violations) == {
        "title": ViolationKind.TOO_SHORT,
        "description": ViolationKind.TOO_SHORT,
        "body": ViolationKind.REQUIRED,
        "user_id": ViolationKind.REQUIRED,
        "tags": ViolationKind.REQUIRED,
    }


def test_article_tag_length():
    violations = validate_article(VALID_ARTICLE, ["ok", "x", "t" * 51])
    assert _kinds(violations) == {
        "tags[1]": ViolationKind.TOO_SHORT,
        "tags[2]": ViolationKind.TOO_LONG,
    }


def test_article_tag_length_counts_stored_name():
    # Tags are stored stripped, so padding does not count towards the minimum.
    violations = validate_article(VALID_ARTICLE, [" a ", "   ", "  go  "])
    assert _kinds(violations) == {
        "tags[0]": ViolationKind.TOO_SHORT,
        "tags[1]": ViolationKind.REQUIRED,
    }


def test_comment_requires_all_fields():
    assert validate_comment({"body": "hi", "user_id": 1, "article_id": 2}) == []
    assert _kinds(validate_comment({"body": "", "user_id": None, "article_id": 0})) == {
        "body": ViolationKind.REQUIRED,
        "user_id": ViolationKind.REQUIRED,
        "article_id": ViolationKind.REQUIRED,
    }


# ---------------------------------------------------------------------------
# Patches
# ---------------------------------------------------------------------------

def _user() -> User:
    return User(
        id=1,
        username="alice.w",
        email="alice@example.com",
        password="$argon2id$hash",
        name="Alice Wonder",
        bio="Reader",
        image="",
    )


def test_merge_user_overlays_supplied_fields_only():
    user = _user()
    merged = merge_user(user, UserPatch(name="Alice Liddell", bio="", image=None))

    assert merged.values["name"] == "Alice Liddell"
    assert merged.values["bio"] == "Reader"
    assert merged.values["password"] == "$argon2id$hash"
    assert merged.password_changed is False
    # The loaded entity is untouched.
    assert user.name == "Alice Wonder"


def test_merge_user_flags_new_password():
    merged = merge_user(_user(), UserPatch(password="N3w-secret"))
    assert merged.password_changed is True
    assert merged.values["password"] == "N3w-secret"


def test_merge_article_keeps_author():
    article = Article(id=3, title="Old title", description="", body="Old body", user_id=1)
    values = merge_article(article, ArticlePatch(body="New body"))
    assert values == {"title": "Old title", "description": "", "body": "New body", "user_id": 1}
    assert article.body == "Old body"


def test_patches_are_immutable():
    patch = ArticlePatch(title="Some title")
    with pytest.raises(PydanticValidationError):
        patch.title = "Other title"
