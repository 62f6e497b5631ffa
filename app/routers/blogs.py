# app/routers/blogs.py
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.media import MediaStore, get_media_store, read_upload, read_uploads
from app.database import get_session
from app.repositories.blog_repo import BlogRepository
from app.repositories.service_repo import ServiceRepository
from app.schemas.blog import BlogCreate, BlogFilters, BlogRead, BlogStats, BlogUpdate
from app.schemas.common import Envelope, Pagination, form_model
from app.services.blog_service import BlogService

router = APIRouter(prefix="/blogs", tags=["Blogs"])

repo = BlogRepository()
service_repo = ServiceRepository()


def get_blog_service(media: MediaStore = Depends(get_media_store)) -> BlogService:
    return BlogService(repo, service_repo, media)


# -------- Public endpoints --------


@router.get("", response_model=Envelope[list[BlogRead]])
def list_blogs(
    filters: Annotated[BlogFilters, Query()],
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    """
    List blog posts.

    sort: recent | popular (views, then likes) | views | likes
    """
    blogs, total = service.list_blogs(session, filters)
    return {
        "success": True,
        "data": [BlogRead.model_validate(b) for b in blogs],
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


@router.get("/slug/{slug}", response_model=Envelope[BlogRead])
def get_blog_by_slug(
    slug: str,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    blog = service.view_by_slug(session, slug)
    return {"success": True, "data": BlogRead.model_validate(blog)}


@router.get("/{blog_id}", response_model=Envelope[BlogRead])
def get_blog(
    blog_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    """Read a post. Each read counts as a view."""
    blog = service.view_blog(session, blog_id)
    return {"success": True, "data": BlogRead.model_validate(blog)}


@router.put("/{blog_id}/like", response_model=Envelope[BlogRead])
def like_blog(
    blog_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    blog = service.like_blog(session, blog_id)
    return {
        "success": True,
        "message": "Blog liked successfully",
        "data": BlogRead.model_validate(blog),
    }


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=Envelope[BlogRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_blog(
    title: str | None = Form(None),
    description: str | None = Form(None),
    is_active: str | None = Form(None),
    thumbnail: UploadFile | None = File(None),
    gallery: list[UploadFile] | None = File(None),
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    """
    Create a post (admin only).

    Multipart: optional `thumbnail`, and 1 to 10 `gallery` images.
    """
    payload = form_model(
        BlogCreate, title=title, description=description, is_active=is_active
    )
    blog = service.create_blog(
        session, payload, read_upload(thumbnail), read_uploads(gallery)
    )
    return {
        "success": True,
        "message": "Blog created successfully",
        "data": BlogRead.model_validate(blog),
    }


@router.put(
    "/{blog_id}",
    response_model=Envelope[BlogRead],
    dependencies=[Depends(require_admin)],
)
def update_blog(
    blog_id: uuid.UUID,
    title: str | None = Form(None),
    description: str | None = Form(None),
    is_active: str | None = Form(None),
    thumbnail: UploadFile | None = File(None),
    gallery: list[UploadFile] | None = File(None),
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    """
    Update a post (admin only).
    A new thumbnail replaces the old one; gallery images are appended.
    """
    payload = form_model(
        BlogUpdate, title=title, description=description, is_active=is_active
    )
    blog = service.update_blog(
        session, blog_id, payload, read_upload(thumbnail), read_uploads(gallery)
    )
    return {
        "success": True,
        "message": "Blog updated successfully",
        "data": BlogRead.model_validate(blog),
    }


@router.delete(
    "/{blog_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
def delete_blog(
    blog_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    service.delete_blog(session, blog_id)
    return {"success": True, "message": "Blog deleted successfully"}


@router.put(
    "/{blog_id}/activate",
    response_model=Envelope[BlogRead],
    dependencies=[Depends(require_admin)],
)
def activate_blog(
    blog_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    blog = service.set_active(session, blog_id, True)
    return {
        "success": True,
        "message": "Blog activated successfully",
        "data": BlogRead.model_validate(blog),
    }


@router.put(
    "/{blog_id}/deactivate",
    response_model=Envelope[BlogRead],
    dependencies=[Depends(require_admin)],
)
def deactivate_blog(
    blog_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    blog = service.set_active(session, blog_id, False)
    return {
        "success": True,
        "message": "Blog deactivated successfully",
        "data": BlogRead.model_validate(blog),
    }


@router.get(
    "/{blog_id}/stats",
    response_model=Envelope[BlogStats],
    dependencies=[Depends(require_admin)],
)
def get_blog_stats(
    blog_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    return {"success": True, "data": service.get_stats(session, blog_id)}


@router.delete(
    "/{blog_id}/gallery/{index}",
    response_model=Envelope[BlogRead],
    dependencies=[Depends(require_admin)],
)
def remove_gallery_image(
    blog_id: uuid.UUID,
    index: int,
    session: Session = Depends(get_session),
    service: BlogService = Depends(get_blog_service),
):
    """Remove one gallery image by position. The last image cannot be removed."""
    blog = service.remove_gallery_image(session, blog_id, index)
    return {
        "success": True,
        "message": "Gallery image removed successfully",
        "data": BlogRead.model_validate(blog),
    }
