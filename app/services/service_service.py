# app/services/service_service.py
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
from app.models.group import Group
from app.models.service import DEFAULT_SERVICE_ICON, Service
from app.repositories.group_repo import GroupRepository
from app.repositories.service_repo import ServiceRepository
from app.schemas.service import (
    ServiceCreate,
    ServiceFilters,
    ServiceRead,
    ServiceStats,
    ServiceUpdate,
)

logger = logging.getLogger(__name__)

ICON_FOLDER = "services/icons"


class ServiceService:
    """
    Business logic for Service.

    Responsibilities:
      - title uniqueness, slug generation, icon handling
      - aggregate counts over active + approved groups (refresh_counts)
      - deletion guard while visible groups exist
    """

    def __init__(
        self,
        repo: ServiceRepository,
        group_repo: GroupRepository,
        media: MediaStore,
    ):
        self.repo = repo
        self.group_repo = group_repo
        self.media = media

    # ---- internal helpers ----

    def _ensure_title_free(
        self,
        session: Session,
        title: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if self.repo.get_by_title(session, title, exclude_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Service with this title already exists",
            )

    # ---- public operations ----

    def create_service(
        self,
        session: Session,
        payload: ServiceCreate,
        icon: ImageFile | None = None,
    ) -> Service:
        self._ensure_title_free(session, payload.title)

        service = Service(
            title=payload.title,
            subtitle=payload.subtitle,
            description=payload.description,
            is_active=payload.is_active,
            slug=unique_slug(session, Service, payload.title, fallback="service"),
        )

        if icon is not None:
            asset = store_image(self.media, icon, ICON_FOLDER)
            service.icon = asset.url
            service.icon_public_id = asset.public_id

        with discard_on_error(self.media, [service.icon_public_id]):
            return self.repo.create(session, service)

    def list_services(
        self,
        session: Session,
        filters: ServiceFilters,
    ) -> tuple[list[Service], int]:
        return self.repo.search(session, filters)

    def get_service(self, session: Session, service_id: uuid.UUID) -> Service:
        service = self.repo.get_by_id(session, service_id)
        if not service:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found",
            )
        return service

    def get_active_service(self, session: Session, service_id: uuid.UUID) -> Service:
        """Service that accepts new groups."""
        service = self.repo.get_by_id(session, service_id)
        if not service or not service.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found or is inactive",
            )
        return service

    def get_by_slug(self, session: Session, slug: str) -> Service:
        service = self.repo.get_by_slug(session, slug)
        if not service or not service.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found",
            )
        return service

    def get_with_groups(
        self,
        session: Session,
        service_id: uuid.UUID,
    ) -> tuple[Service, list[Group]]:
        service = self.get_service(session, service_id)
        return service, self.group_repo.list_visible_for_service(session, service.id)

    def update_service(
        self,
        session: Session,
        service_id: uuid.UUID,
        payload: ServiceUpdate,
        icon: ImageFile | None = None,
    ) -> Service:
        service = self.get_service(session, service_id)

        if payload.title is not None and payload.title != service.title:
            self._ensure_title_free(session, payload.title, exclude_id=service.id)
            service.title = payload.title
            service.slug = unique_slug(
                session, Service, payload.title, fallback="service", exclude_id=service.id
            )

        if payload.subtitle is not None:
            service.subtitle = payload.subtitle
        if payload.description is not None:
            service.description = payload.description
        if payload.is_active is not None:
            service.is_active = payload.is_active

        if icon is not None:
            discard_image(self.media, service.icon_public_id)
            asset = store_image(self.media, icon, ICON_FOLDER)
            service.icon = asset.url
            service.icon_public_id = asset.public_id

        return self.repo.update(session, service)

    def delete_service(self, session: Session, service_id: uuid.UUID) -> None:
        """
        Delete a service.

        Blocked while it has active, approved groups. Remaining
        (pending / rejected / inactive) groups are removed with it.
        """
        service = self.get_service(session, service_id)

        visible = self.group_repo.count_for_service(
            session, service.id, approval_status="approved", is_active=True
        )
        if visible > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    "Cannot delete service with existing groups. "
                    "Please delete all groups first."
                ),
            )

        for group in self.group_repo.list_for_service(session, service.id):
            discard_image(self.media, group.group_icon_public_id)
            self.group_repo.delete(session, group)

        if service.icon != DEFAULT_SERVICE_ICON:
            discard_image(self.media, service.icon_public_id)

        self.repo.delete(session, service)
        logger.info(f"Service {service_id} deleted")

    def set_active(self, session: Session, service_id: uuid.UUID, is_active: bool) -> Service:
        service = self.get_service(session, service_id)
        service.is_active = is_active
        return self.repo.update(session, service)

    def get_stats(self, session: Session, service_id: uuid.UUID) -> ServiceStats:
        service = self.get_service(session, service_id)
        count = self.group_repo.count_for_service
        return ServiceStats(
            service=ServiceRead.model_validate(service),
            total_groups=count(session, service.id),
            active_groups=count(session, service.id, approval_status="approved", is_active=True),
            pending_groups=count(session, service.id, approval_status="pending"),
            total_members=self.group_repo.sum_members_for_service(
                session, service.id, visible_only=False
            ),
            private_groups=count(session, service.id, is_private=True),
            public_groups=count(session, service.id, is_private=False),
        )

    # ----- Aggregate maintenance -----

    def refresh_counts(self, session: Session, service_id: uuid.UUID) -> Service | None:
        """
        Recompute total_groups / total_members from the service's
        active + approved groups.

        Called after every group write that can change them.
        """
        service = self.repo.get_by_id(session, service_id)
        if service is None:
            return None
        service.total_groups = self.group_repo.count_for_service(
            session, service.id, approval_status="approved", is_active=True
        )
        service.total_members = self.group_repo.sum_members_for_service(session, service.id)
        return self.repo.update(session, service)
