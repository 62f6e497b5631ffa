# app/services/blog_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.media import (
    ImageFile,
    MediaStore,
    UploadedAsset,
    discard_image,
    discard_on_error,
    store_image,
    validate_image,
)
from app.core.slug import unique_slug
from app.models.blog import DEFAULT_BLOG_THUMBNAIL, Blog
from app.models.service import Service
from app.repositories.blog_repo import BlogRepository
from app.repositories.service_repo import ServiceRepository
from app.schemas.blog import BlogCreate, BlogFilters, BlogStats, BlogUpdate

THUMBNAIL_FOLDER = "blogs/thumbnails"
GALLERY_FOLDER = "blogs/gallery"


def _gallery_entry(asset: UploadedAsset) -> dict:
    return {"url": asset.url, "public_id": asset.public_id}


class BlogService:
    """
    Business logic for blog posts.

    Responsibilities:
      - binding posts to the default service
      - title uniqueness, slug generation
      - thumbnail + gallery uploads, with cleanup when a later upload fails
      - view / like counters
    """

    def __init__(
        self,
        repo: BlogRepository,
        service_repo: ServiceRepository,
        media: MediaStore,
    ):
        self.repo = repo
        self.service_repo = service_repo
        self.media = media

    # ---- internal helpers ----

    def _default_service(self, session: Session) -> Service:
        slug = get_settings().DEFAULT_BLOG_SERVICE_SLUG
        service = self.service_repo.get_by_slug(session, slug)
        if service is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Default service not found",
            )
        return service

    def _ensure_title_free(
        self,
        session: Session,
        title: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if self.repo.get_by_title(session, title, exclude_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Blog with this title already exists",
            )

    def _upload_gallery(
        self,
        images: list[ImageFile],
        already_uploaded: list[str],
    ) -> list[dict]:
        """
        Upload gallery images; on failure delete everything uploaded in this
        operation (including `already_uploaded` public ids) and re-raise.
        """
        entries: list[dict] = []
        try:
            for image in images:
                entries.append(_gallery_entry(store_image(self.media, image, GALLERY_FOLDER)))
        except HTTPException:
            for public_id in already_uploaded + [e["public_id"] for e in entries]:
                discard_image(self.media, public_id)
            raise
        return entries

    # ---- public operations ----

    def create_blog(
        self,
        session: Session,
        payload: BlogCreate,
        thumbnail: ImageFile | None,
        gallery: list[ImageFile],
    ) -> Blog:
        """
        Create a post: thumbnail first, then the gallery (at least one image).
        """
        service = self._default_service(session)
        self._ensure_title_free(session, payload.title)

        if not gallery:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="At least one gallery image is required",
            )
        for image in ([thumbnail] if thumbnail else []) + gallery:
            validate_image(image)

        blog = Blog(
            title=payload.title,
            description=payload.description,
            is_active=payload.is_active,
            service_id=service.id,
            slug=unique_slug(session, Blog, payload.title, fallback="blog"),
        )

        uploaded: list[str] = []
        if thumbnail is not None:
            asset = store_image(self.media, thumbnail, THUMBNAIL_FOLDER)
            blog.thumbnail = asset.url
            blog.thumbnail_public_id = asset.public_id
            uploaded.append(asset.public_id)

        blog.gallery = self._upload_gallery(gallery, uploaded)
        uploaded += [entry["public_id"] for entry in blog.gallery]

        with discard_on_error(self.media, uploaded):
            return self.repo.create(session, blog)

    def list_blogs(self, session: Session, filters: BlogFilters) -> tuple[list[Blog], int]:
        return self.repo.search(session, filters)

    def get_blog(self, session: Session, blog_id: uuid.UUID) -> Blog:
        blog = self.repo.get_by_id(session, blog_id)
        if not blog:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Blog not found",
            )
        return blog

    def view_blog(self, session: Session, blog_id: uuid.UUID) -> Blog:
        """Read a post and count the view."""
        blog = self.get_blog(session, blog_id)
        return self.repo.increment(session, blog, "views")

    def view_by_slug(self, session: Session, slug: str) -> Blog:
        blog = self.repo.get_by_slug(session, slug)
        if not blog or not blog.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Blog not found",
            )
        return self.repo.increment(session, blog, "views")

    def like_blog(self, session: Session, blog_id: uuid.UUID) -> Blog:
        blog = self.get_blog(session, blog_id)
        return self.repo.increment(session, blog, "likes")

    def update_blog(
        self,
        session: Session,
        blog_id: uuid.UUID,
        payload: BlogUpdate,
        thumbnail: ImageFile | None = None,
        gallery: list[ImageFile] | None = None,
    ) -> Blog:
        """
        Partial update.

        - a new thumbnail replaces the old one
        - gallery images are appended
        """
        blog = self.get_blog(session, blog_id)

        if payload.title is not None and payload.title != blog.title:
            self._ensure_title_free(session, payload.title, exclude_id=blog.id)
            blog.title = payload.title
            blog.slug = unique_slug(
                session, Blog, payload.title, fallback="blog", exclude_id=blog.id
            )
        if payload.description is not None:
            blog.description = payload.description
        if payload.is_active is not None:
            blog.is_active = payload.is_active

        for image in ([thumbnail] if thumbnail else []) + (gallery or []):
            validate_image(image)

        uploaded: list[str] = []
        if thumbnail is not None:
            if blog.thumbnail != DEFAULT_BLOG_THUMBNAIL:
                discard_image(self.media, blog.thumbnail_public_id)
            asset = store_image(self.media, thumbnail, THUMBNAIL_FOLDER)
            blog.thumbnail = asset.url
            blog.thumbnail_public_id = asset.public_id
            uploaded.append(asset.public_id)

        if gallery:
            blog.gallery = list(blog.gallery) + self._upload_gallery(gallery, uploaded)

        return self.repo.update(session, blog)

    def delete_blog(self, session: Session, blog_id: uuid.UUID) -> None:
        blog = self.get_blog(session, blog_id)
        discard_image(self.media, blog.thumbnail_public_id)
        for entry in blog.gallery:
            discard_image(self.media, entry.get("public_id"))
        self.repo.delete(session, blog)

    def set_active(self, session: Session, blog_id: uuid.UUID, is_active: bool) -> Blog:
        blog = self.get_blog(session, blog_id)
        blog.is_active = is_active
        return self.repo.update(session, blog)

    def remove_gallery_image(self, session: Session, blog_id: uuid.UUID, index: int) -> Blog:
        blog = self.get_blog(session, blog_id)
        gallery = list(blog.gallery)

        if index < 0 or index >= len(gallery):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid image index",
            )
        if len(gallery) == 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot remove the last image from gallery",
            )

        removed = gallery.pop(index)
        discard_image(self.media, removed.get("public_id"))
        blog.gallery = gallery
        return self.repo.update(session, blog)

    def get_stats(self, session: Session, blog_id: uuid.UUID) -> BlogStats:
        blog = self.get_blog(session, blog_id)
        service = self.service_repo.get_by_id(session, blog.service_id)
        return BlogStats(
            id=blog.id,
            title=blog.title,
            views=blog.views,
            likes=blog.likes,
            gallery_count=blog.gallery_count,
            estimated_reading_time=blog.estimated_reading_time,
            is_active=blog.is_active,
            service_id=blog.service_id,
            service_title=service.title if service else None,
            created_at=blog.created_at,
            updated_at=blog.updated_at,
        )
