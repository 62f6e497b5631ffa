# app/routers/services.py
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.media import MediaStore, get_media_store, read_upload
from app.database import get_session
from app.repositories.group_repo import GroupRepository
from app.repositories.service_repo import ServiceRepository
from app.schemas.common import Envelope, Pagination, form_model
from app.schemas.group import GroupRead
from app.schemas.service import (
    ServiceCreate,
    ServiceDetail,
    ServiceFilters,
    ServiceRead,
    ServiceStats,
    ServiceUpdate,
)
from app.services.service_service import ServiceService

router = APIRouter(prefix="/services", tags=["Services"])

repo = ServiceRepository()
group_repo = GroupRepository()


def get_service_service(media: MediaStore = Depends(get_media_store)) -> ServiceService:
    return ServiceService(repo, group_repo, media)


# -------- Public endpoints --------


@router.get("", response_model=Envelope[list[ServiceRead]])
def list_services(
    filters: Annotated[ServiceFilters, Query()],
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    """
    List services, busiest first (groups, then members, then newest).
    """
    services, total = service.list_services(session, filters)
    return {
        "success": True,
        "data": [ServiceRead.model_validate(s) for s in services],
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


@router.get("/slug/{slug}", response_model=Envelope[ServiceRead])
def get_service_by_slug(
    slug: str,
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    found = service.get_by_slug(session, slug)
    return {"success": True, "data": ServiceRead.model_validate(found)}


@router.get("/{service_id}", response_model=Envelope[ServiceDetail])
def get_service(
    service_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    """
    Service detail with its active, approved groups (most members first).
    """
    found, groups = service.get_with_groups(session, service_id)
    detail = ServiceDetail.model_validate(found)
    detail.groups = [GroupRead.model_validate(g) for g in groups]
    return {"success": True, "data": detail}


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=Envelope[ServiceRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_service(
    title: str | None = Form(None),
    subtitle: str | None = Form(None),
    description: str | None = Form(None),
    is_active: str | None = Form(None),
    icon: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    payload = form_model(
        ServiceCreate,
        title=title,
        subtitle=subtitle,
        description=description,
        is_active=is_active,
    )
    created = service.create_service(session, payload, read_upload(icon))
    return {
        "success": True,
        "message": "Service created successfully",
        "data": ServiceRead.model_validate(created),
    }


@router.put(
    "/{service_id}",
    response_model=Envelope[ServiceRead],
    dependencies=[Depends(require_admin)],
)
def update_service(
    service_id: uuid.UUID,
    title: str | None = Form(None),
    subtitle: str | None = Form(None),
    description: str | None = Form(None),
    is_active: str | None = Form(None),
    icon: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    payload = form_model(
        ServiceUpdate,
        title=title,
        subtitle=subtitle,
        description=description,
        is_active=is_active,
    )
    updated = service.update_service(session, service_id, payload, read_upload(icon))
    return {
        "success": True,
        "message": "Service updated successfully",
        "data": ServiceRead.model_validate(updated),
    }


@router.delete(
    "/{service_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
def delete_service(
    service_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    """
    Delete a service (admin only).
    Refused while it has active, approved groups.
    """
    service.delete_service(session, service_id)
    return {"success": True, "message": "Service deleted successfully"}


@router.put(
    "/{service_id}/activate",
    response_model=Envelope[ServiceRead],
    dependencies=[Depends(require_admin)],
)
def activate_service(
    service_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    updated = service.set_active(session, service_id, True)
    return {
        "success": True,
        "message": "Service activated successfully",
        "data": ServiceRead.model_validate(updated),
    }


@router.put(
    "/{service_id}/deactivate",
    response_model=Envelope[ServiceRead],
    dependencies=[Depends(require_admin)],
)
def deactivate_service(
    service_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    updated = service.set_active(session, service_id, False)
    return {
        "success": True,
        "message": "Service deactivated successfully",
        "data": ServiceRead.model_validate(updated),
    }


@router.put(
    "/{service_id}/update-stats",
    response_model=Envelope[ServiceRead],
    dependencies=[Depends(require_admin)],
)
def update_service_stats(
    service_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    """Recompute total_groups / total_members from the service's groups."""
    service.get_service(session, service_id)
    updated = service.refresh_counts(session, service_id)
    return {
        "success": True,
        "message": "Service statistics updated successfully",
        "data": ServiceRead.model_validate(updated),
    }


@router.get(
    "/{service_id}/stats",
    response_model=Envelope[ServiceStats],
    dependencies=[Depends(require_admin)],
)
def get_service_stats(
    service_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ServiceService = Depends(get_service_service),
):
    return {"success": True, "data": service.get_stats(session, service_id)}
