"""
Explicit per-entity validation.

Each ``validate_*`` function inspects a plain mapping of field values and
returns every violation it finds (an empty list means valid).  Callers
raise ``errors.ValidationError`` with the list when it is non-empty, so a
client sees all field problems at once.
"""
import enum
import re
import string
from typing import Any, Mapping, NamedTuple

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

USER_SHORT_MIN_LEN = 5
USER_SHORT_MAX_LEN = 100
USER_LONG_MAX_LEN = 255
PASSWORD_MIN_LEN = 7
PASSWORD_MAX_LEN = 50

ARTICLE_SHORT_MIN_LEN = 5
ARTICLE_SHORT_MAX_LEN = 100
TAG_MIN_LEN = 2
TAG_MAX_LEN = 50

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.]+[a-zA-Z0-9]$")
_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


class ViolationKind(str, enum.Enum):
    REQUIRED = "required"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    INVALID_FORMAT = "invalid_format"
    WEAK_PASSWORD = "weak_password"


class Violation(NamedTuple):
    field: str
    kind: ViolationKind
    message: str


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

def _check_length(
    field: str, value: str, min_len: int, max_len: int, *, required: bool
) -> list[Violation]:
    if not value:
        if required:
            return [Violation(field, ViolationKind.REQUIRED, "cannot be blank")]
        return []
    if len(value) < min_len:
        return [Violation(field, ViolationKind.TOO_SHORT, f"the length must be between {min_len} and {max_len}")]
    if len(value) > max_len:
        return [Violation(field, ViolationKind.TOO_LONG, f"the length must be between {min_len} and {max_len}")]
    return []


def _check_password_strength(password: str) -> list[Violation]:
    violations = _check_length(
        "password", password, PASSWORD_MIN_LEN, PASSWORD_MAX_LEN, required=True
    )
    if violations:
        return violations

    missing = []
    if not any(c.isupper() for c in password):
        missing.append("one uppercase")
    if not any(c.islower() for c in password):
        missing.append("one lowercase")
    if not any(c.isdigit() for c in password):
        missing.append("one number")
    if not any(c in string.punctuation or not (c.isalnum() or c.isspace()) for c in password):
        missing.append("one symbol or punctuation")
    if missing:
        return [Violation("password", ViolationKind.WEAK_PASSWORD, f"must have at least {', '.join(missing)}")]
    return []


def _is_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _is_url(value: str) -> bool:
    try:
        _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return True


# ---------------------------------------------------------------------------
# Entity validators
# ---------------------------------------------------------------------------

def validate_user(values: Mapping[str, Any], *, plain_password: bool) -> list[Violation]:
    """
    Validate user column values.

    The password strength rules only apply when *plain_password* is True;
    an already-hashed password is only checked for presence.
    """
    violations: list[Violation] = []

    username = values.get("username") or ""
    violations += _check_length("username", username, USER_SHORT_MIN_LEN, USER_SHORT_MAX_LEN, required=True)
    if username and not violations and not _USERNAME_RE.match(username):
        violations.append(Violation("username", ViolationKind.INVALID_FORMAT, "must be in a valid format"))

    email = values.get("email") or ""
    email_violations = _check_length("email", email, USER_SHORT_MIN_LEN, USER_SHORT_MAX_LEN, required=True)
    if not email_violations and not _is_email(email):
        email_violations.append(Violation("email", ViolationKind.INVALID_FORMAT, "must be a valid email address"))
    violations += email_violations

    password = values.get("password") or ""
    if plain_password:
        violations += _check_password_strength(password)
    elif not password:
        violations.append(Violation("password", ViolationKind.REQUIRED, "cannot be blank"))

    violations += _check_length(
        "name", values.get("name") or "", USER_SHORT_MIN_LEN, USER_SHORT_MAX_LEN, required=True
    )
    violations += _check_length("bio", values.get("bio") or "", 0, USER_LONG_MAX_LEN, required=False)

    image = values.get("image") or ""
    image_violations = _check_length("image", image, 0, USER_LONG_MAX_LEN, required=False)
    if image and not image_violations and not _is_url(image):
        image_violations.append(Violation("image", ViolationKind.INVALID_FORMAT, "must be a valid URL"))
    violations += image_violations

    return violations


def validate_article(values: Mapping[str, Any], tag_names: list[str] | None = None) -> list[Violation]:
    """
    Validate article column values.

    *tag_names* is only checked on creation; pass None when validating an
    update, since tags cannot change afterwards.
    """
    violations: list[Violation] = []
    violations += _check_length(
        "title", values.get("title") or "", ARTICLE_SHORT_MIN_LEN, ARTICLE_SHORT_MAX_LEN, required=True
    )
    violations += _check_length(
        "description",
        values.get("description") or "",
        ARTICLE_SHORT_MIN_LEN,
        ARTICLE_SHORT_MAX_LEN,
        required=False,
    )
    if not values.get("body"):
        violations.append(Violation("body", ViolationKind.REQUIRED, "cannot be blank"))
    if not values.get("user_id"):
        violations.append(Violation("user_id", ViolationKind.REQUIRED, "cannot be blank"))

    if tag_names is not None:
        if not tag_names:
            violations.append(Violation("tags", ViolationKind.REQUIRED, "cannot be blank"))
        for index, name in enumerate(tag_names):
            violations += _check_length(
                f"tags[{index}]", (name or "").strip(), TAG_MIN_LEN, TAG_MAX_LEN, required=True
            )

    return violations


def validate_comment(values: Mapping[str, Any]) -> list[Violation]:
    violations: list[Violation] = []
    if not values.get("body"):
        violations.append(Violation("body", ViolationKind.REQUIRED, "cannot be blank"))
    if not values.get("article_id"):
        violations.append(Violation("article_id", ViolationKind.REQUIRED, "cannot be blank"))
    if not values.get("user_id"):
        violations.append(Violation("user_id", ViolationKind.REQUIRED, "cannot be blank"))
    return violations
