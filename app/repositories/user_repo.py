# app/repositories/user_repo.py
import uuid

from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.core.helpers import utcnow
from app.models.user import User
from app.repositories.pagination import fetch_page
from app.schemas.user import UserFilters


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_field(
        self,
        session: Session,
        field: str,
        value: str,
        exclude_id: uuid.UUID | None = None,
    ) -> User | None:
        """
        Return the User whose unique `field` (username/email/phone) equals value.
        `exclude_id` skips the given user (used for uniqueness checks on update).
        """
        column = getattr(User, field)
        stmt = select(User).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return session.exec(stmt).first()

    def get_by_identifier(self, session: Session, identifier: str) -> User | None:
        """Match a login identifier against username, email or phone."""
        stmt = select(User).where(
            or_(
                User.username == identifier,
                User.email == identifier.lower(),
                User.phone == identifier,
            )
        )
        return session.exec(stmt).first()

    # ----- Listing / counting -----

    def search(self, session: Session, filters: UserFilters) -> tuple[list[User], int]:
        """
        Paginated user listing, newest first.

        Filters: active_only, role, search (name/username/email/phone).
        """
        stmt = select(User)
        if filters.active_only:
            stmt = stmt.where(User.is_active == True)  # noqa: E712
        if filters.role:
            stmt = stmt.where(User.role == filters.role)
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(User.full_name).like(pattern),
                    func.lower(User.username).like(pattern),
                    func.lower(User.email).like(pattern),
                    User.phone.like(pattern),
                )
            )
        stmt = stmt.order_by(User.created_at.desc())
        return fetch_page(session, stmt, filters.offset, filters.limit)

    def count(
        self,
        session: Session,
        *,
        is_active: bool | None = None,
        role: str | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(User)
        if is_active is not None:
            stmt = stmt.where(User.is_active == is_active)
        if role is not None:
            stmt = stmt.where(User.role == role)
        return int(session.exec(stmt).one() or 0)

    # ----- Basic CRUD -----

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        user.updated_at = utcnow()
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def delete(self, session: Session, user: User) -> None:
        """Delete a User."""
        session.delete(user)
        session.commit()
