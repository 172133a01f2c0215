"""Cookie helpers shared by the HTTP tests."""
from httpx import Response

from article_api.auth import ACCESS_TOKEN_COOKIE

PASSWORD = "Passw0rd!"


def session_cookies(resp: Response) -> dict[str, str]:
    """Return the token cookies set by *resp* as ``{name: value}``."""
    cookies = {}
    for header in resp.headers.get_list("set-cookie"):
        name, _, value = header.split(";", 1)[0].partition("=")
        cookies[name.strip()] = value.strip().strip('"')
    return cookies


def cookie_header(cookies: dict[str, str], *names: str) -> dict[str, str]:
    names = names or (ACCESS_TOKEN_COOKIE,)
    return {"Cookie": "; ".join(f"{n}={cookies[n]}" for n in names)}
