from datetime import datetime

from pydantic import BaseModel

from article_api.models import Article, Comment, User


# --- User / Profile ---

class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class RegisterRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""
    name: str = ""


class ProfileResponse(BaseModel):
    username: str
    name: str
    bio: str
    image: str
    following: bool

    @classmethod
    def from_user(cls, user: User, following: bool = False) -> "ProfileResponse":
        return cls(
            username=user.username,
            name=user.name,
            bio=user.bio or "",
            image=user.image or "",
            following=following,
        )


# --- Article ---

class CreateArticleRequest(BaseModel):
    title: str = ""
    description: str = ""
    body: str = ""
    tags: list[str] = []


class ArticleResponse(BaseModel):
    id: int
    title: str
    description: str
    body: str
    tags: list[str]
    favorited: bool
    favorites_count: int
    author: ProfileResponse
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def from_article(
        cls,
        article: Article,
        favorited: bool = False,
        following: bool = False,
        favorites_count: int | None = None,
    ) -> "ArticleResponse":
        return cls(
            id=article.id,
            title=article.title,
            description=article.description,
            body=article.body,
            tags=article.tag_names,
            favorited=favorited,
            favorites_count=article.favorites_count if favorites_count is None else favorites_count,
            author=ProfileResponse.from_user(article.author, following),
            created_at=article.created_at,
            updated_at=article.updated_at,
        )


class ArticlesResponse(BaseModel):
    articles: list[ArticleResponse]
    articles_count: int


class TagsResponse(BaseModel):
    tags: list[str]


# --- Comment ---

class CreateCommentRequest(BaseModel):
    body: str = ""


class CommentResponse(BaseModel):
    id: int
    body: str
    author: ProfileResponse
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def from_comment(cls, comment: Comment, following: bool = False) -> "CommentResponse":
        return cls(
            id=comment.id,
            body=comment.body,
            author=ProfileResponse.from_user(comment.author, following),
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class CommentsResponse(BaseModel):
    comments: list[CommentResponse]


# --- Diagnostics ---

class CounterMismatchResponse(BaseModel):
    article_id: int
    favorites_count: int
    favorite_rows: int


class DiagnosticsResponse(BaseModel):
    total_users: int
    total_articles: int
    total_comments: int
    total_tags: int
    total_follows: int
    total_favorites: int
    favorites_count_mismatches: list[CounterMismatchResponse] = []
    cache_info: dict = {}
