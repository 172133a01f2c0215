"""
Error taxonomy shared by the token service, the store and the routers.

Every domain failure is an ``AppError`` subclass tagged with the HTTP
status the router layer should answer with; the single exception handler
registered in ``main.py`` renders them as ``{"error": message}``.
Infrastructure failures (driver errors, aborted transactions) are not
wrapped and surface as 500 responses once ``get_db`` has rolled back.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from article_api.validation import Violation


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed domain object; never has side effects."""

    status_code = 400

    def __init__(self, violations: list[Violation] | str) -> None:
        if isinstance(violations, str):
            message, self.violations = violations, []
        else:
            self.violations = list(violations)
            message = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class ForbiddenError(AppError):
    """Actor is not the owner of the resource being mutated."""

    status_code = 403


class AuthenticationError(AppError):
    """Token missing, expired, malformed or signed with the wrong algorithm."""

    status_code = 401


class ConfigurationError(AppError):
    pass


class TokenIssueError(AppError):
    pass


class DatabaseUnavailableError(AppError):
    pass
