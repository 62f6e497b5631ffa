# app/repositories/blog_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from app.core.helpers import utcnow
from app.models.blog import Blog
from app.repositories.pagination import fetch_page
from app.schemas.blog import BlogFilters

SORT_ORDERS = {
    "recent": (Blog.created_at.desc(),),
    "popular": (Blog.views.desc(), Blog.likes.desc(), Blog.created_at.desc()),
    "views": (Blog.views.desc(),),
    "likes": (Blog.likes.desc(),),
}


class BlogRepository:
    """
    Data access layer for Blog.
    """

    def get_by_id(self, session: Session, blog_id: uuid.UUID) -> Blog | None:
        return session.get(Blog, blog_id)

    def get_by_slug(self, session: Session, slug: str) -> Blog | None:
        stmt = select(Blog).where(Blog.slug == slug)
        return session.exec(stmt).first()

    def get_by_title(
        self,
        session: Session,
        title: str,
        exclude_id: uuid.UUID | None = None,
    ) -> Blog | None:
        stmt = select(Blog).where(func.lower(Blog.title) == title.lower())
        if exclude_id is not None:
            stmt = stmt.where(Blog.id != exclude_id)
        return session.exec(stmt).first()

    def search(self, session: Session, filters: BlogFilters) -> tuple[list[Blog], int]:
        stmt = select(Blog)
        if filters.active_only:
            stmt = stmt.where(Blog.is_active == True)  # noqa: E712
        stmt = stmt.order_by(*SORT_ORDERS[filters.sort])
        return fetch_page(session, stmt, filters.offset, filters.limit)

    def increment(self, session: Session, blog: Blog, field: str) -> Blog:
        """
        Bump a counter column (views / likes) in SQL and reload the row.
        Does not touch updated_at.
        """
        setattr(blog, field, getattr(Blog, field) + 1)
        session.add(blog)
        session.commit()
        session.refresh(blog)
        return blog

    def create(self, session: Session, blog: Blog) -> Blog:
        session.add(blog)
        session.commit()
        session.refresh(blog)
        return blog

    def update(self, session: Session, blog: Blog) -> Blog:
        blog.updated_at = utcnow()
        session.add(blog)
        session.commit()
        session.refresh(blog)
        return blog

    def delete(self, session: Session, blog: Blog) -> None:
        session.delete(blog)
        session.commit()
