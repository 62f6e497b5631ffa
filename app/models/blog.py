# app/models/blog.py
import math
import uuid
from datetime import datetime

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

from app.core.helpers import pluralize, utcnow

DEFAULT_BLOG_THUMBNAIL = "default-thumbnail-url"
WORDS_PER_MINUTE = 200


class Blog(SQLModel, table=True):
    """
    Blog post attached to the default service.

    gallery is a JSON list of {"url": ..., "public_id": ...}.
    Assign a new list when changing it; in-place mutation is not tracked.
    """

    __tablename__ = "blogs"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    title: str = Field(
        max_length=200,
        unique=True,
        index=True,
        description="Display title (unique)",
    )

    description: str = Field(
        max_length=5000,
        description="Post body",
    )

    thumbnail: str = Field(
        default=DEFAULT_BLOG_THUMBNAIL,
        description="Public URL of the thumbnail",
    )

    thumbnail_public_id: str | None = Field(
        default=None,
        description="Storage path of the thumbnail",
    )

    gallery: list[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    service_id: uuid.UUID = Field(
        index=True,
        description="The default service blogs belong to",
    )

    is_active: bool = Field(default=True, index=True)

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp (UTC)",
    )

    @property
    def formatted_views(self) -> str:
        return pluralize(self.views, "view")

    @property
    def formatted_likes(self) -> str:
        return pluralize(self.likes, "like")

    @property
    def gallery_count(self) -> int:
        return len(self.gallery or [])

    @property
    def estimated_reading_time(self) -> str:
        words = len((self.description or "").split())
        minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
        return f"{minutes} min read"
