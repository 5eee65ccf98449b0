"""
Pydantic schemas for request/response validation.
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Any, List, Literal, Optional

from siteadmin.services.tags import split_tag_input

PostStatus = Literal["draft", "pending", "published", "archived"]


# === Authentication ===

class LoginRequest(BaseModel):
    """Login request"""
    password: str


class LoginResponse(BaseModel):
    """Login response with JWT token"""
    token: str
    expires_at: datetime


class UserInfo(BaseModel):
    """Authenticated user information"""
    authenticated: bool
    actor_id: int


# === Blog ===

class PostInput(BaseModel):
    """Blog post as submitted by the admin UI or the draft generator"""
    id: Optional[int] = None
    title: str = ""
    body: str = Field("", validation_alias=AliasChoices("body", "body_html"))
    excerpt: str = ""
    slug: str = ""
    cover_image: str = Field("", validation_alias=AliasChoices("cover_image", "coverImage"))
    cover_image_alt: str = Field(
        "", validation_alias=AliasChoices("cover_image_alt", "coverImageAlt")
    )
    author_name: str = Field("", validation_alias=AliasChoices("author_name", "authorName"))
    status: PostStatus = "draft"
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator(
        "title", "body", "excerpt", "slug", "cover_image", "cover_image_alt", "author_name",
        mode="before",
    )
    @classmethod
    def _strip(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: Any) -> List[str]:
        return split_tag_input(value)


class TagResponse(BaseModel):
    """Tag attached to a post"""
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class TagSummary(TagResponse):
    """Tag with the number of published posts using it"""
    post_count: int


class PostSummary(BaseModel):
    """Compact post used in listings"""
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    cover_image_alt: Optional[str] = None
    author_name: Optional[str] = None
    status: PostStatus
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tags: List[TagResponse] = []

    model_config = ConfigDict(from_attributes=True)


class PostDetail(PostSummary):
    """Full post"""
    body_html: str
    created_at: Optional[datetime] = None


class PostListResponse(BaseModel):
    """Paginated post listing"""
    posts: List[PostSummary]
    total: int
    has_more: bool


class AdjacentPosts(BaseModel):
    """Neighbours of a post by publication time"""
    previous: Optional[PostSummary] = None
    next: Optional[PostSummary] = None


class PublicPostResponse(BaseModel):
    """Public post page payload"""
    post: PostDetail
    adjacent: AdjacentPosts
    related: List[PostSummary]


class PublishRequest(BaseModel):
    """Publish (true) or move back to draft (false)"""
    publish: bool = True


class DraftRequest(BaseModel):
    """Prompt for AI draft generation"""
    prompt: str


# === AI settings & chat ===

class AISettingsResponse(BaseModel):
    """AI settings as shown to the admin (key masked)"""
    enabled: bool
    has_api_key: bool
    api_key_masked: str
    models: dict
    temperature: float
    max_tokens: int
    updated_at: Optional[str] = None


class AISettingsUpdate(BaseModel):
    """Partial AI settings update; blank api_key keeps the stored key"""
    enabled: Optional[bool] = None
    api_key: Optional[str] = None
    text_model: Optional[str] = None
    image_model: Optional[str] = None
    tts_model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class ChatRequest(BaseModel):
    """One user chat message"""
    text: str = Field(..., min_length=1)


class ConnectionTestResponse(BaseModel):
    """Result of pinging the AI provider"""
    status: Literal["pass", "fail"]
    message: str
