# app/repositories/service_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from app.core.helpers import utcnow
from app.models.service import Service
from app.repositories.pagination import fetch_page
from app.schemas.service import ServiceFilters


class ServiceRepository:
    """
    Data access layer for Service.
    """

    def get_by_id(self, session: Session, service_id: uuid.UUID) -> Service | None:
        return session.get(Service, service_id)

    def get_by_slug(self, session: Session, slug: str) -> Service | None:
        stmt = select(Service).where(Service.slug == slug)
        return session.exec(stmt).first()

    def get_by_title(
        self,
        session: Session,
        title: str,
        exclude_id: uuid.UUID | None = None,
    ) -> Service | None:
        stmt = select(Service).where(func.lower(Service.title) == title.lower())
        if exclude_id is not None:
            stmt = stmt.where(Service.id != exclude_id)
        return session.exec(stmt).first()

    def search(
        self,
        session: Session,
        filters: ServiceFilters,
    ) -> tuple[list[Service], int]:
        """Most groups first, then most members, then newest."""
        stmt = select(Service)
        if filters.active_only:
            stmt = stmt.where(Service.is_active == True)  # noqa: E712
        stmt = stmt.order_by(
            Service.total_groups.desc(),
            Service.total_members.desc(),
            Service.created_at.desc(),
        )
        return fetch_page(session, stmt, filters.offset, filters.limit)

    def create(self, session: Session, service: Service) -> Service:
        session.add(service)
        session.commit()
        session.refresh(service)
        return service

    def update(self, session: Session, service: Service) -> Service:
        service.updated_at = utcnow()
        session.add(service)
        session.commit()
        session.refresh(service)
        return service

    def delete(self, session: Session, service: Service) -> None:
        session.delete(service)
        session.commit()
