# app/models/service.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.core.helpers import pluralize, utcnow

DEFAULT_SERVICE_ICON = "default-icon-url"


class Service(SQLModel, table=True):
    """
    Top-level grouping of community groups.

    total_groups / total_members are aggregates over the service's
    active + approved groups, recomputed by ServiceService.refresh_counts.
    """

    __tablename__ = "services"

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

    subtitle: str = Field(
        max_length=300,
        description="Short tagline",
    )

    description: str = Field(
        max_length=2000,
        description="Long description",
    )

    icon: str = Field(
        default=DEFAULT_SERVICE_ICON,
        description="Public URL of the icon",
    )

    icon_public_id: str | None = Field(
        default=None,
        description="Storage path of the icon (used for deletion)",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    total_groups: int = Field(default=0, ge=0)
    total_members: int = Field(default=0, ge=0)

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
    def formatted_groups(self) -> str:
        return pluralize(self.total_groups, "group")

    @property
    def formatted_members(self) -> str:
        return pluralize(self.total_members, "member")
