# app/models/group.py
import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

from app.core.helpers import pluralize, utcnow

DEFAULT_GROUP_ICON = "default-group-icon-url"


class Group(SQLModel, table=True):
    """
    Community group inside a Service.

    Visibility vs joinability:
      - approval_status: "pending" | "approved" | "rejected" (system admin decision)
      - is_active: whether the group accepts joins
      - is_private: private groups need the group admin to approve joins

    members_count is always recomputed from approved join records.
    """

    __tablename__ = "groups"
    __table_args__ = (
        UniqueConstraint("service_id", "name", name="uq_groups_service_name"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=200,
        index=True,
        description="Display name (unique within its service)",
    )

    description: str = Field(
        max_length=1000,
        description="What the group is about",
    )

    group_icon: str = Field(
        default=DEFAULT_GROUP_ICON,
        description="Public URL of the icon",
    )

    group_icon_public_id: str | None = Field(
        default=None,
        description="Storage path of the icon (used for deletion)",
    )

    link: str | None = Field(
        default=None,
        description="External link (chat invite, website); sent in approval emails",
    )

    is_active: bool = Field(default=False, index=True)
    is_private: bool = Field(default=False, index=True)

    service_id: uuid.UUID = Field(
        index=True,
        description="Owning service",
    )

    created_by: uuid.UUID = Field(
        index=True,
        description="User who created the group",
    )

    group_admin: uuid.UUID = Field(
        index=True,
        description="User allowed to decide join requests",
    )

    members_count: int = Field(default=0, ge=0, index=True)

    approval_status: str = Field(
        default="pending",
        index=True,
        description="pending | approved | rejected",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last update timestamp (UTC)",
    )

    members: list["GroupMember"] = Relationship(
        back_populates="group",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "GroupMember.joined_at",
        },
    )

    @property
    def formatted_members(self) -> str:
        return pluralize(self.members_count, "member")

    def member_record(self, user_id: uuid.UUID) -> "GroupMember | None":
        for record in self.members:
            if record.user_id == user_id:
                return record
        return None


class GroupMember(SQLModel, table=True):
    """
    Join record: one per (group, user).

    status: "pending" | "approved" | "rejected"
    role:   "member" | "admin"
    """

    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    group_id: uuid.UUID = Field(
        foreign_key="groups.id",
        ondelete="CASCADE",
        index=True,
    )

    user_id: uuid.UUID = Field(index=True)

    status: str = Field(
        default="pending",
        index=True,
        description="pending | approved | rejected",
    )

    role: str = Field(
        default="member",
        description="member | admin",
    )

    joined_at: datetime = Field(
        default_factory=utcnow,
        description="When the join request was made (UTC)",
    )

    group: Group | None = Relationship(back_populates="members")
