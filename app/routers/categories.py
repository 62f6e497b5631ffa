# app/routers/categories.py
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.media import MediaStore, get_media_store, read_upload
from app.database import get_session
from app.repositories.category_repo import CategoryRepository
from app.schemas.category import (
    CategoryCreate,
    CategoryFilters,
    CategoryRead,
    CategoryStats,
    CategoryUpdate,
)
from app.schemas.common import Envelope, Pagination, form_model
from app.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])

repo = CategoryRepository()


def get_category_service(media: MediaStore = Depends(get_media_store)) -> CategoryService:
    return CategoryService(repo, media)


# -------- Public endpoints --------


@router.get("", response_model=Envelope[list[CategoryRead]])
def list_categories(
    filters: Annotated[CategoryFilters, Query()],
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    """
    List categories with search, active filter and sorting.
    """
    categories, total = service.list_categories(session, filters)
    return {
        "success": True,
        "data": [CategoryRead.model_validate(c) for c in categories],
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


@router.get("/active", response_model=Envelope[list[CategoryRead]])
def list_active_categories(
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    """Active categories by name, for dropdowns."""
    categories = service.list_active(session)
    return {"success": True, "data": [CategoryRead.model_validate(c) for c in categories]}


@router.get("/slug/{slug}", response_model=Envelope[CategoryRead])
def get_category_by_slug(
    slug: str,
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    category = service.get_by_slug(session, slug)
    return {"success": True, "data": CategoryRead.model_validate(category)}


@router.get(
    "/stats",
    response_model=Envelope[CategoryStats],
    dependencies=[Depends(require_admin)],
)
def get_category_stats(
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    return {"success": True, "data": service.get_stats(session)}


@router.get("/{category_id}", response_model=Envelope[CategoryRead])
def get_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    category = service.get_category(session, category_id)
    return {"success": True, "data": CategoryRead.model_validate(category)}


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=Envelope[CategoryRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_category(
    name: str | None = Form(None),
    description: str | None = Form(None),
    is_active: str | None = Form(None),
    logo: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    """
    Create a category (admin only). Multipart, with an optional `logo` file.
    """
    payload = form_model(
        CategoryCreate, name=name, description=description, is_active=is_active
    )
    category = service.create_category(session, payload, read_upload(logo))
    return {
        "success": True,
        "message": "Category created successfully",
        "data": CategoryRead.model_validate(category),
    }


@router.put(
    "/{category_id}",
    response_model=Envelope[CategoryRead],
    dependencies=[Depends(require_admin)],
)
def update_category(
    category_id: uuid.UUID,
    name: str | None = Form(None),
    description: str | None = Form(None),
    is_active: str | None = Form(None),
    logo: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    payload = form_model(
        CategoryUpdate, name=name, description=description, is_active=is_active
    )
    category = service.update_category(session, category_id, payload, read_upload(logo))
    return {
        "success": True,
        "message": "Category updated successfully",
        "data": CategoryRead.model_validate(category),
    }


@router.patch(
    "/{category_id}/toggle-status",
    response_model=Envelope[CategoryRead],
    dependencies=[Depends(require_admin)],
)
def toggle_category_status(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    category = service.toggle_status(session, category_id)
    state = "activated" if category.is_active else "deactivated"
    return {
        "success": True,
        "message": f"Category {state} successfully",
        "data": CategoryRead.model_validate(category),
    }


@router.delete(
    "/{category_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CategoryService = Depends(get_category_service),
):
    """
    Delete a category and its logo (admin only).
    Refused while products are filed under it.
    """
    service.delete_category(session, category_id)
    return {"success": True, "message": "Category deleted successfully"}
