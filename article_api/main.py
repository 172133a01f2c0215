import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from article_api.auth import get_context_user_id
from article_api.cache import cache
from article_api.config import settings
from article_api.database import engine, wait_for_database
from article_api.dependencies import get_token_service
from article_api.errors import AppError, ValidationError
from article_api.middleware import TimingMiddleware
from article_api.routers import articles, comments, diagnostics, profiles, tags, users

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: fail fast on a missing secret or an unreachable database.
    configure_logging()
    get_token_service()
    await wait_for_database(engine)
    await cache.connect()  # App works without Redis
    logger.info("started in %s mode", settings.APP_ENV)
    yield
    # Shutdown
    await cache.disconnect()
    await engine.dispose()


app = FastAPI(
    title="Article Management API",
    description="Users, articles, tags, comments, follows and favorites with cookie-based JWT sessions",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        "%s %s -> %d (user %d): %s",
        request.method,
        request.url.path,
        exc.status_code,
        get_context_user_id(request),
        exc.message,
    )
    content: dict = {"error": exc.message}
    if isinstance(exc, ValidationError) and exc.violations:
        content["violations"] = [
            {"field": v.field, "kind": v.kind.value, "message": v.message} for v in exc.violations
        ]
    return JSONResponse(status_code=exc.status_code, content=content)


# Middleware
_origins = settings.get_cors_origins()
app.add_middleware(TimingMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    # Cookies need credentials, which browsers refuse alongside a wildcard origin.
    allow_credentials="*" not in _origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users.router)
app.include_router(profiles.router)
app.include_router(articles.router)
app.include_router(comments.router)
app.include_router(tags.router)
app.include_router(diagnostics.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
