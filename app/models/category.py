# app/models/category.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.core.helpers import as_utc, utcnow


class Category(SQLModel, table=True):
    """
    Product category.

    `counts` is the running number of products filed under this category;
    ProductService increments/decrements it on create/delete/move.
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
        description="Display name (unique, case-insensitive)",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str = Field(
        max_length=500,
        description="Category description",
    )

    logo_url: str | None = Field(
        default=None,
        description="Public URL of the logo",
    )

    logo_public_id: str | None = Field(
        default=None,
        description="Storage path of the logo (used for deletion)",
    )

    counts: int = Field(
        default=0,
        ge=0,
        description="Number of products in this category",
    )

    is_active: bool = Field(
        default=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp (UTC)",
    )

    @property
    def formatted_date(self) -> str | None:
        if not self.created_at:
            return None
        return as_utc(self.created_at).date().isoformat()
