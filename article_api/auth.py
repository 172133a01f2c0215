"""
Token service — stateless, HMAC-signed session tokens carried in cookies.

A login mints a pair of JWTs for the same user id: a short-lived access
token (cookie ``session``) and a refresh token (cookie ``refreshToken``)
that outlives it by a factor of 24 and is only accepted by the refresh
endpoint.  Nothing is stored server side; a token is valid exactly while
its signature verifies and ``exp`` lies in the future.

The resolved identity travels with the request as an immutable ``Viewer``
kept on ``request.state``; user id ``0`` means an anonymous viewer.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

import jwt
from starlette.requests import Request
from starlette.responses import Response

from article_api.errors import AuthenticationError, ConfigurationError, TokenIssueError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "session"
REFRESH_TOKEN_COOKIE = "refreshToken"

ACCESS_TOKEN_LIFETIME = timedelta(hours=72)
REFRESH_TOKEN_LIFETIME = ACCESS_TOKEN_LIFETIME * 24
COOKIE_MAX_AGE = timedelta(days=20)

SIGNING_ALGORITHM = "HS512"
# Only the HMAC family is accepted on decode; RS*/ES*/none are rejected.
ACCEPTED_ALGORITHMS = ["HS256", "HS384", "HS512"]

_VIEWER_STATE_KEY = "viewer"


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


class Viewer(NamedTuple):
    """Identity resolved for the in-flight request."""

    user_id: int = 0

    @property
    def is_authenticated(self) -> bool:
        return self.user_id > 0


ANONYMOUS = Viewer(0)


class TokenService:
    def __init__(self, secret: str, cookie_domain: str | None = None) -> None:
        if not secret:
            raise ConfigurationError("token signing secret is not set")
        self._secret = secret
        self._cookie_domain = cookie_domain or None

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_token_pair(self, user_id: int) -> TokenPair:
        return self.issue_token_pair_at(user_id, datetime.now(timezone.utc))

    def issue_token_pair_at(self, user_id: int, now: datetime) -> TokenPair:
        """Deterministic variant of ``issue_token_pair`` for a fixed *now*."""
        return TokenPair(
            access_token=self._encode(user_id, now, ACCESS_TOKEN_LIFETIME),
            refresh_token=self._encode(user_id, now, REFRESH_TOKEN_LIFETIME),
        )

    def _encode(self, user_id: int, now: datetime, lifetime: timedelta) -> str:
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + lifetime).timestamp()),
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=SIGNING_ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise TokenIssueError("failed to generate token") from exc

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def decode_user_id(self, token: str) -> int:
        """Verify *token* and return the user id it asserts."""
        if not token:
            raise AuthenticationError("token is empty")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=ACCEPTED_ALGORITHMS,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("token has expired") from exc
        except jwt.InvalidAlgorithmError as exc:
            raise AuthenticationError("unexpected signing method") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError(f"invalid token: {exc}") from exc

        try:
            user_id = int(claims["sub"])
        except (TypeError, ValueError) as exc:
            raise AuthenticationError("invalid token: cannot map token to claims") from exc
        if user_id < 1:
            raise AuthenticationError("invalid token: cannot map token to claims")
        return user_id

    def extract_user_id(
        self, request: Request, strict: bool = True, use_refresh_token: bool = False
    ) -> int:
        """
        Resolve the user id carried by the request's token cookie.

        With ``strict=False`` a missing or empty cookie yields ``0``
        (anonymous access).  Every other failure raises
        ``AuthenticationError``, whatever the mode.
        """
        cookie_name = REFRESH_TOKEN_COOKIE if use_refresh_token else ACCESS_TOKEN_COOKIE
        token = request.cookies.get(cookie_name)
        if not token:
            if not strict:
                return 0
            raise AuthenticationError(f"cookie {cookie_name!r} is missing")
        return self.decode_user_id(token)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def attach_tokens(self, response: Response, pair: TokenPair, base_path: str) -> None:
        max_age = int(COOKIE_MAX_AGE.total_seconds())
        for name, value in (
            (ACCESS_TOKEN_COOKIE, pair.access_token),
            (REFRESH_TOKEN_COOKIE, pair.refresh_token),
        ):
            response.set_cookie(
                key=name,
                value=value,
                max_age=max_age,
                path=base_path,
                domain=self._cookie_domain,
                secure=True,
                httponly=True,
                samesite="strict",
            )


# ---------------------------------------------------------------------------
# Request-scoped identity
# ---------------------------------------------------------------------------

def set_context_user_id(request: Request, user_id: int) -> Viewer:
    viewer = Viewer(user_id)
    setattr(request.state, _VIEWER_STATE_KEY, viewer)
    return viewer


def get_context_user_id(request: Request) -> int:
    viewer: Viewer = getattr(request.state, _VIEWER_STATE_KEY, ANONYMOUS)
    return viewer.user_id
