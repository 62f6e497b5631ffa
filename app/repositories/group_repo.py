# app/repositories/group_repo.py
import uuid

from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.core.helpers import utcnow
from app.models.group import Group, GroupMember
from app.repositories.pagination import fetch_page


class GroupRepository:
    """
    Data access layer for Group and its join records.

    Join records are part of the Group aggregate: they are added to /
    removed from `group.members` and persisted together with the group.
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, group_id: uuid.UUID) -> Group | None:
        return session.get(Group, group_id)

    def get_by_name_in_service(
        self,
        session: Session,
        service_id: uuid.UUID,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> Group | None:
        stmt = select(Group).where(
            Group.service_id == service_id,
            func.lower(Group.name) == name.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Group.id != exclude_id)
        return session.exec(stmt).first()

    # ----- Listing -----

    def search(
        self,
        session: Session,
        *,
        skip: int,
        limit: int,
        service_id: uuid.UUID | None = None,
        is_private: bool | None = None,
        approval_status: str | None = None,
        is_active: bool | None = None,
        owner_id: uuid.UUID | None = None,
    ) -> tuple[list[Group], int]:
        """Newest first."""
        stmt = select(Group)
        if service_id is not None:
            stmt = stmt.where(Group.service_id == service_id)
        if is_private is not None:
            stmt = stmt.where(Group.is_private == is_private)
        if approval_status is not None:
            stmt = stmt.where(Group.approval_status == approval_status)
        if is_active is not None:
            stmt = stmt.where(Group.is_active == is_active)
        if owner_id is not None:
            stmt = stmt.where(
                or_(Group.created_by == owner_id, Group.group_admin == owner_id)
            )
        stmt = stmt.order_by(Group.created_at.desc())
        return fetch_page(session, stmt, skip, limit)

    def list_visible_for_service(
        self,
        session: Session,
        service_id: uuid.UUID,
    ) -> list[Group]:
        """Active + approved groups of a service, most members first."""
        stmt = (
            select(Group)
            .where(
                Group.service_id == service_id,
                Group.is_active == True,  # noqa: E712
                Group.approval_status == "approved",
            )
            .order_by(Group.members_count.desc(), Group.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def list_for_service(self, session: Session, service_id: uuid.UUID) -> list[Group]:
        stmt = select(Group).where(Group.service_id == service_id)
        return list(session.exec(stmt).all())

    def list_memberships(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[tuple[Group, GroupMember]]:
        """Groups the user has a join record in, with that record."""
        stmt = (
            select(Group, GroupMember)
            .join(GroupMember, GroupMember.group_id == Group.id)
            .where(GroupMember.user_id == user_id)
            .order_by(GroupMember.joined_at.desc())
        )
        return list(session.exec(stmt).all())

    # ----- Aggregates -----

    def count_for_service(
        self,
        session: Session,
        service_id: uuid.UUID,
        *,
        approval_status: str | None = None,
        is_active: bool | None = None,
        is_private: bool | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(Group).where(Group.service_id == service_id)
        if approval_status is not None:
            stmt = stmt.where(Group.approval_status == approval_status)
        if is_active is not None:
            stmt = stmt.where(Group.is_active == is_active)
        if is_private is not None:
            stmt = stmt.where(Group.is_private == is_private)
        return int(session.exec(stmt).one() or 0)

    def sum_members_for_service(
        self,
        session: Session,
        service_id: uuid.UUID,
        *,
        visible_only: bool = True,
    ) -> int:
        stmt = select(func.coalesce(func.sum(Group.members_count), 0)).where(
            Group.service_id == service_id
        )
        if visible_only:
            stmt = stmt.where(
                Group.is_active == True,  # noqa: E712
                Group.approval_status == "approved",
            )
        return int(session.exec(stmt).one() or 0)

    # ----- CRUD -----

    def create(self, session: Session, group: Group) -> Group:
        session.add(group)
        session.commit()
        session.refresh(group)
        return group

    def update(self, session: Session, group: Group) -> Group:
        group.updated_at = utcnow()
        session.add(group)
        session.commit()
        session.refresh(group)
        return group

    def delete(self, session: Session, group: Group) -> None:
        session.delete(group)
        session.commit()
