# app/services/user_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.auth import create_access_token, hash_password, verify_password
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import (
    AdminUserUpdate,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserFilters,
    UserStats,
)
from app.services.notification_service import Notifier

logger = logging.getLogger(__name__)

# Unique user fields and the label used in "... already exists" errors
UNIQUE_FIELDS: dict[str, str] = {
    "username": "Username",
    "email": "Email",
    "phone": "Phone number",
}


class UserService:
    """
    Business logic for accounts.

    Responsibilities:
      - registration / login / token issuance
      - uniqueness of username, email, phone
      - profile edits
      - admin management (list, update, soft/hard delete, reactivate)
    """

    def __init__(self, repo: UserRepository, notifier: Notifier):
        self.repo = repo
        self.notifier = notifier

    # ---- internal helpers ----

    def _ensure_unique(
        self,
        session: Session,
        values: dict[str, str | None],
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        for field, label in UNIQUE_FIELDS.items():
            value = values.get(field)
            if value is None:
                continue
            if self.repo.get_by_field(session, field, value, exclude_id) is not None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{label} already exists",
                )

    # ----- Authentication -----

    def register(self, session: Session, payload: RegisterRequest) -> tuple[User, str]:
        """
        Create an account and return (user, token).

        The welcome email is fire-and-forget.
        """
        self._ensure_unique(session, payload.model_dump())

        user = User(
            full_name=payload.full_name,
            username=payload.username,
            email=payload.email,
            phone=payload.phone,
            password_hash=hash_password(payload.password),
        )
        user = self.repo.create(session, user)
        logger.info(f"New user registered: {user.username}")

        self.notifier.send_welcome(user.full_name, user.email)

        return user, create_access_token(user)

    def login(self, session: Session, payload: LoginRequest) -> tuple[User, str]:
        """
        Authenticate with username, email or phone.

        Raises:
            HTTPException(401): unknown identifier, wrong password, inactive account.
        """
        user = self.repo.get_by_identifier(session, payload.identifier)
        if (
            user is None
            or not user.is_active
            or not verify_password(payload.password, user.password_hash)
        ):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
            )
        return user, create_access_token(user)

    # ----- Self profile -----

    def update_profile(
        self,
        session: Session,
        current_user: User,
        payload: ProfileUpdate,
    ) -> User:
        """
        Partial profile update: full_name, email, phone.
        Email / phone must not belong to another account.
        """
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        self._ensure_unique(session, changes, exclude_id=current_user.id)

        for field, value in changes.items():
            setattr(current_user, field, value)

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        filters: UserFilters,
    ) -> tuple[list[User], int, UserStats]:
        users, total = self.repo.search(session, filters)

        total_users = self.repo.count(session)
        active_users = self.repo.count(session, is_active=True)
        admin_users = self.repo.count(session, role="admin")
        stats = UserStats(
            total_users=total_users,
            active_users=active_users,
            inactive_users=total_users - active_users,
            admin_users=admin_users,
            regular_users=total_users - admin_users,
        )
        return users, total, stats

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Raises:
            HTTPException(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_user(
        self,
        session: Session,
        admin: User,
        user_id: uuid.UUID,
        payload: AdminUserUpdate,
    ) -> User:
        """
        Admin edit of any account.

        Rules:
          - an admin cannot change their own role or active flag
          - username / email / phone stay unique
        """
        user = self.get_user(session, user_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        if user.id == admin.id:
            role_changed = "role" in changes and changes["role"] != user.role
            status_changed = "is_active" in changes and changes["is_active"] != user.is_active
            if role_changed or status_changed:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="You cannot change your own role or status",
                )

        self._ensure_unique(session, changes, exclude_id=user.id)

        for field, value in changes.items():
            setattr(user, field, value)

        return self.repo.update(session, user)

    def delete_user(
        self,
        session: Session,
        admin: User,
        user_id: uuid.UUID,
        permanent: bool = False,
    ) -> str:
        """
        Soft-deactivate (default) or permanently delete an account.

        Returns:
            Human-readable result message.
        """
        user = self.get_user(session, user_id)

        if user.id == admin.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot delete your own account",
            )

        if user.role == "admin" and user.is_active:
            if self.repo.count(session, is_active=True, role="admin") <= 1:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot delete the last active admin",
                )

        if permanent:
            self.repo.delete(session, user)
            logger.info(f"User {user_id} permanently deleted by {admin.username}")
            return "User permanently deleted"

        user.is_active = False
        self.repo.update(session, user)
        logger.info(f"User {user_id} deactivated by {admin.username}")
        return "User deactivated successfully"

    def reactivate_user(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.get_user(session, user_id)
        if user.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User is already active",
            )
        user.is_active = True
        return self.repo.update(session, user)
