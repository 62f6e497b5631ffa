# app/services/group_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.media import (
    ImageFile,
    MediaStore,
    discard_image,
    discard_on_error,
    store_image,
)
from app.core.slug import unique_slug
from app.models.group import DEFAULT_GROUP_ICON, Group, GroupMember
from app.models.user import User
from app.repositories.group_repo import GroupRepository
from app.repositories.user_repo import UserRepository
from app.schemas.group import GroupCreate, GroupFilters, GroupUpdate
from app.services.notification_service import Notifier
from app.services.service_service import ServiceService

logger = logging.getLogger(__name__)

ICON_FOLDER = "groups/icons"

ALREADY_JOINED_MESSAGES: dict[str, str] = {
    "pending": "You have already requested to join this group",
    "approved": "You have already joined this group",
    "rejected": "You have already been rejected from this group",
}


class GroupService:
    """
    Business logic for groups and the join workflow.

    Responsibilities:
      - group CRUD with per-service name uniqueness and icon handling
      - system-admin approval of groups (approval_status + is_active)
      - join requests: public groups auto-approve, private ones wait
        for the group admin
      - members_count recomputed from approved join records after
        every membership change
      - service aggregates refreshed after every relevant write
      - decision emails (fire-and-forget)
    """

    def __init__(
        self,
        repo: GroupRepository,
        user_repo: UserRepository,
        service_service: ServiceService,
        media: MediaStore,
        notifier: Notifier,
    ):
        self.repo = repo
        self.user_repo = user_repo
        self.service_service = service_service
        self.media = media
        self.notifier = notifier

    # ---- internal helpers ----

    @staticmethod
    def _recount_members(group: Group) -> None:
        group.members_count = sum(1 for m in group.members if m.status == "approved")

    def _ensure_name_free(
        self,
        session: Session,
        service_id: uuid.UUID,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if self.repo.get_by_name_in_service(session, service_id, name, exclude_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Group with this name already exists in this service",
            )

    @staticmethod
    def _require_group_admin(group: Group, user: User, detail: str) -> None:
        if group.group_admin != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

    @staticmethod
    def _require_group_or_system_admin(group: Group, user: User, detail: str) -> None:
        if group.group_admin != user.id and user.role != "admin":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

    def _save(self, session: Session, group: Group) -> Group:
        """Persist the group, then refresh its service's aggregates."""
        group = self.repo.update(session, group)
        self.service_service.refresh_counts(session, group.service_id)
        session.refresh(group)
        return group

    # ----- Groups -----

    def create_group(
        self,
        session: Session,
        user: User,
        payload: GroupCreate,
        icon: ImageFile | None = None,
    ) -> Group:
        """
        Create a group owned and administered by `user`.
        It starts pending approval and inactive.
        """
        service = self.service_service.get_active_service(session, payload.service_id)
        self._ensure_name_free(session, service.id, payload.name)

        group = Group(
            name=payload.name,
            description=payload.description,
            is_private=payload.is_private,
            link=payload.link,
            service_id=service.id,
            created_by=user.id,
            group_admin=user.id,
            approval_status="pending",
            is_active=False,
            slug=unique_slug(session, Group, payload.name, fallback="group"),
        )

        if icon is not None:
            asset = store_image(self.media, icon, ICON_FOLDER)
            group.group_icon = asset.url
            group.group_icon_public_id = asset.public_id

        with discard_on_error(self.media, [group.group_icon_public_id]):
            return self.repo.create(session, group)

    def list_groups(
        self,
        session: Session,
        filters: GroupFilters,
        user: User | None,
    ) -> tuple[list[Group], int]:
        """
        Visibility:
          - system admin: everything, or the pending / approved queue
          - authenticated user with owner=true: groups they created or administer
          - everyone else: active + approved groups only
        """
        kwargs: dict = {
            "skip": filters.offset,
            "limit": filters.limit,
            "service_id": filters.service_id,
            "is_private": filters.is_private,
        }

        if user is not None and user.role == "admin":
            if filters.pending:
                kwargs["approval_status"] = "pending"
            elif filters.approved:
                kwargs["approval_status"] = "approved"
                kwargs["is_active"] = True
        elif user is not None and filters.owner:
            kwargs["owner_id"] = user.id
        else:
            kwargs["approval_status"] = "approved"
            kwargs["is_active"] = True

        return self.repo.search(session, **kwargs)

    def list_pending(
        self,
        session: Session,
        skip: int,
        limit: int,
    ) -> tuple[list[Group], int]:
        return self.repo.search(session, skip=skip, limit=limit, approval_status="pending")

    def list_for_service(self, session: Session, service_id: uuid.UUID) -> list[Group]:
        self.service_service.get_service(session, service_id)
        return self.repo.list_visible_for_service(session, service_id)

    def list_my_groups(
        self,
        session: Session,
        user: User,
    ) -> list[tuple[Group, GroupMember]]:
        return self.repo.list_memberships(session, user.id)

    def get_group(self, session: Session, group_id: uuid.UUID) -> Group:
        group = self.repo.get_by_id(session, group_id)
        if not group:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Group not found",
            )
        return group

    def update_group(
        self,
        session: Session,
        user: User,
        group_id: uuid.UUID,
        payload: GroupUpdate,
        icon: ImageFile | None = None,
    ) -> Group:
        group = self.get_group(session, group_id)
        self._require_group_or_system_admin(
            group, user, "Not authorized to update this group"
        )

        if payload.name is not None and payload.name != group.name:
            self._ensure_name_free(session, group.service_id, payload.name, exclude_id=group.id)
            group.name = payload.name
            group.slug = unique_slug(
                session, Group, payload.name, fallback="group", exclude_id=group.id
            )

        if payload.description is not None:
            group.description = payload.description
        if payload.is_private is not None:
            group.is_private = payload.is_private
        if "link" in payload.model_fields_set:
            group.link = payload.link

        if icon is not None:
            if group.group_icon != DEFAULT_GROUP_ICON:
                discard_image(self.media, group.group_icon_public_id)
            asset = store_image(self.media, icon, ICON_FOLDER)
            group.group_icon = asset.url
            group.group_icon_public_id = asset.public_id

        return self.repo.update(session, group)

    def delete_group(self, session: Session, user: User, group_id: uuid.UUID) -> None:
        group = self.get_group(session, group_id)
        self._require_group_or_system_admin(
            group, user, "Not authorized to delete this group"
        )

        service_id = group.service_id
        discard_image(self.media, group.group_icon_public_id)
        self.repo.delete(session, group)
        self.service_service.refresh_counts(session, service_id)

    def set_approval(
        self,
        session: Session,
        admin: User,
        group_id: uuid.UUID,
        approved: bool,
    ) -> Group:
        """
        System-admin decision on a group.
        Approval makes it active; rejection makes it inactive.
        """
        group = self.get_group(session, group_id)
        group.approval_status = "approved" if approved else "rejected"
        group.is_active = approved
        group = self._save(session, group)
        logger.info(
            f"Group {group.id} {group.approval_status} by {admin.username}"
        )
        return group

    # ----- Join workflow -----

    def join_group(self, session: Session, user: User, group_id: uuid.UUID) -> GroupMember:
        """
        Request to join.

        - public group => approved immediately
        - private group => pending until the group admin decides
        """
        group = self.get_group(session, group_id)

        if not group.is_active or group.approval_status != "approved":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Group is not active or not approved",
            )

        existing = group.member_record(user.id)
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=ALREADY_JOINED_MESSAGES[existing.status],
            )

        record = GroupMember(
            user_id=user.id,
            status="pending" if group.is_private else "approved",
        )
        group.members.append(record)
        self._recount_members(group)
        self._save(session, group)
        session.refresh(record)
        return record

    def list_join_requests(
        self,
        session: Session,
        user: User,
        group_id: uuid.UUID,
        request_status: str = "pending",
    ) -> list[GroupMember]:
        group = self.get_group(session, group_id)
        self._require_group_admin(
            group, user, "Not authorized. Only group admin can view join requests."
        )
        return [m for m in group.members if m.status == request_status]

    def decide_join(
        self,
        session: Session,
        user: User,
        group_id: uuid.UUID,
        member_user_id: uuid.UUID,
        approve: bool,
    ) -> GroupMember:
        """
        Group admin approves or rejects a join record, then notifies
        the requester by email.
        """
        group = self.get_group(session, group_id)
        verb = "approve" if approve else "reject"
        self._require_group_admin(
            group, user, f"Not authorized. Only group admin can {verb} join requests."
        )

        record = group.member_record(member_user_id)
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Join request not found",
            )
        if approve and record.status == "approved":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User is already approved",
            )

        record.status = "approved" if approve else "rejected"
        self._recount_members(group)
        group = self._save(session, group)
        session.refresh(record)

        member = self.user_repo.get_by_id(session, member_user_id)
        if member is not None:
            if approve:
                self.notifier.send_group_approval(
                    member.full_name, member.email, group.name, group.link
                )
            else:
                self.notifier.send_group_rejection(
                    member.full_name, member.email, group.name
                )

        return record
