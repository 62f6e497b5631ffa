# app/routers/groups.py
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlmodel import Session

from app.core.auth import get_current_user, require_admin, require_auth
from app.core.media import MediaStore, get_media_store, read_upload
from app.database import get_session
from app.models.user import User
from app.repositories.group_repo import GroupRepository
from app.repositories.service_repo import ServiceRepository
from app.repositories.user_repo import UserRepository
from app.schemas.common import Envelope, PageParams, Pagination, form_model
from app.schemas.group import (
    GroupCreate,
    GroupDetail,
    GroupFilters,
    GroupMemberRead,
    GroupRead,
    GroupUpdate,
    JoinRequestFilters,
    MyGroupRead,
)
from app.services.group_service import GroupService
from app.services.notification_service import Notifier, get_notifier
from app.services.service_service import ServiceService

router = APIRouter(prefix="/groups", tags=["Groups"])

repo = GroupRepository()
user_repo = UserRepository()
service_repo = ServiceRepository()


def get_group_service(
    media: MediaStore = Depends(get_media_store),
    notifier: Notifier = Depends(get_notifier),
) -> GroupService:
    return GroupService(
        repo,
        user_repo,
        ServiceService(service_repo, repo, media),
        media,
        notifier,
    )


# -------- Listing --------


@router.get("", response_model=Envelope[list[GroupRead]])
def list_groups(
    filters: Annotated[GroupFilters, Query()],
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
):
    """
    List groups, newest first.

    - Guests and users: active, approved groups.
    - `owner=true` (authenticated): groups the caller created or administers.
    - Admins: everything, or `pending=true` / `approved=true`.
    """
    groups, total = service.list_groups(session, filters, current_user)
    return {
        "success": True,
        "data": [GroupRead.model_validate(g) for g in groups],
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


@router.get("/service/{service_id}", response_model=Envelope[list[GroupRead]])
def list_service_groups(
    service_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: GroupService = Depends(get_group_service),
):
    groups = service.list_for_service(session, service_id)
    return {"success": True, "data": [GroupRead.model_validate(g) for g in groups]}


@router.get("/my-groups", response_model=Envelope[list[MyGroupRead]])
def list_my_groups(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    """Groups the caller has requested to join, with the request status."""
    rows = service.list_my_groups(session, current_user)
    data = [
        MyGroupRead(**GroupRead.model_validate(group).model_dump(), my_status=member.status)
        for group, member in rows
    ]
    return {"success": True, "data": data}


@router.get(
    "/pending",
    response_model=Envelope[list[GroupRead]],
    dependencies=[Depends(require_admin)],
)
def list_pending_groups(
    params: Annotated[PageParams, Query()],
    session: Session = Depends(get_session),
    service: GroupService = Depends(get_group_service),
):
    groups, total = service.list_pending(session, params.offset, params.limit)
    return {
        "success": True,
        "data": [GroupRead.model_validate(g) for g in groups],
        "pagination": Pagination.build(params.page, params.limit, total),
    }


# -------- CRUD --------


@router.post(
    "",
    response_model=Envelope[GroupRead],
    status_code=status.HTTP_201_CREATED,
)
def create_group(
    name: str | None = Form(None),
    description: str | None = Form(None),
    service_id: str | None = Form(None),
    is_private: str | None = Form(None),
    link: str | None = Form(None),
    group_icon: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    """
    Create a group. The caller becomes its admin.
    The group stays inactive until a system admin approves it.
    """
    payload = form_model(
        GroupCreate,
        name=name,
        description=description,
        service_id=service_id,
        is_private=is_private,
        link=link,
    )
    group = service.create_group(session, current_user, payload, read_upload(group_icon))
    return {
        "success": True,
        "message": "Group created successfully and is pending approval",
        "data": GroupRead.model_validate(group),
    }


@router.get("/{group_id}", response_model=Envelope[GroupDetail])
def get_group(
    group_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: GroupService = Depends(get_group_service),
):
    group = service.get_group(session, group_id)
    return {"success": True, "data": GroupDetail.model_validate(group)}


@router.put("/{group_id}", response_model=Envelope[GroupRead])
def update_group(
    group_id: uuid.UUID,
    name: str | None = Form(None),
    description: str | None = Form(None),
    is_private: str | None = Form(None),
    link: str | None = Form(None),
    group_icon: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    payload = form_model(
        GroupUpdate,
        name=name,
        description=description,
        is_private=is_private,
        link=link,
    )
    group = service.update_group(
        session, current_user, group_id, payload, read_upload(group_icon)
    )
    return {
        "success": True,
        "message": "Group updated successfully",
        "data": GroupRead.model_validate(group),
    }


@router.delete("/{group_id}", response_model=Envelope[None])
def delete_group(
    group_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    service.delete_group(session, current_user, group_id)
    return {"success": True, "message": "Group deleted successfully"}


# -------- System-admin approval --------


@router.put("/{group_id}/approve", response_model=Envelope[GroupRead])
def approve_group(
    group_id: uuid.UUID,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    service: GroupService = Depends(get_group_service),
):
    group = service.set_approval(session, admin, group_id, approved=True)
    return {
        "success": True,
        "message": "Group approved successfully",
        "data": GroupRead.model_validate(group),
    }


@router.put("/{group_id}/reject", response_model=Envelope[GroupRead])
def reject_group(
    group_id: uuid.UUID,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    service: GroupService = Depends(get_group_service),
):
    group = service.set_approval(session, admin, group_id, approved=False)
    return {
        "success": True,
        "message": "Group rejected successfully",
        "data": GroupRead.model_validate(group),
    }


# -------- Join workflow --------


@router.post("/{group_id}/join", response_model=Envelope[GroupMemberRead])
def join_group(
    group_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    """
    Join a group.

    Public groups approve immediately; private groups queue the request
    for the group admin.
    """
    record = service.join_group(session, current_user, group_id)
    message = (
        "Join request sent successfully"
        if record.status == "pending"
        else "Joined group successfully"
    )
    return {
        "success": True,
        "message": message,
        "data": GroupMemberRead.model_validate(record),
    }


@router.get("/{group_id}/requests", response_model=Envelope[list[GroupMemberRead]])
def list_join_requests(
    group_id: uuid.UUID,
    filters: Annotated[JoinRequestFilters, Query()],
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    records = service.list_join_requests(session, current_user, group_id, filters.status)
    return {
        "success": True,
        "data": [GroupMemberRead.model_validate(r) for r in records],
    }


@router.put("/{group_id}/approve/{user_id}", response_model=Envelope[GroupMemberRead])
def approve_join_request(
    group_id: uuid.UUID,
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    record = service.decide_join(session, current_user, group_id, user_id, approve=True)
    return {
        "success": True,
        "message": "Join request approved successfully",
        "data": GroupMemberRead.model_validate(record),
    }


@router.put("/{group_id}/reject/{user_id}", response_model=Envelope[GroupMemberRead])
def reject_join_request(
    group_id: uuid.UUID,
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: GroupService = Depends(get_group_service),
):
    record = service.decide_join(session, current_user, group_id, user_id, approve=False)
    return {
        "success": True,
        "message": "Join request rejected successfully",
        "data": GroupMemberRead.model_validate(record),
    }
