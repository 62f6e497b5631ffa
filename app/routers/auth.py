# app/routers/auth.py
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.core.config import get_settings
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.common import Envelope, Pagination
from app.schemas.user import (
    AdminUserUpdate,
    AuthResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserFilters,
    UserListData,
    UserRead,
)
from app.services.notification_service import Notifier, get_notifier
from app.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])

settings = get_settings()
repo = UserRepository()


def get_user_service(notifier: Notifier = Depends(get_notifier)) -> UserService:
    return UserService(repo, notifier)


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
    )


# -------- Public endpoints --------


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    response: Response,
    session: Session = Depends(get_session),
    service: UserService = Depends(get_user_service),
):
    """
    Create an account.

    - Sets the auth cookie and also returns the token in the body.
    - A welcome email is sent when SMTP is configured.
    """
    user, token = service.register(session, payload)
    _set_auth_cookie(response, token)
    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=UserRead.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    response: Response,
    session: Session = Depends(get_session),
    service: UserService = Depends(get_user_service),
):
    """
    Log in with username, email or phone number.
    """
    user, token = service.login(session, payload)
    _set_auth_cookie(response, token)
    return AuthResponse(
        message="Login successful",
        token=token,
        user=UserRead.model_validate(user),
    )


@router.post("/logout", response_model=Envelope[None])
def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"success": True, "message": "Logged out successfully"}


# -------- Self profile --------


@router.get("/me", response_model=Envelope[UserRead])
def read_me(current_user: User = Depends(require_auth)):
    return {"success": True, "data": UserRead.model_validate(current_user)}


@router.put("/profile", response_model=Envelope[UserRead])
def update_profile(
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: UserService = Depends(get_user_service),
):
    """
    Update full_name, email or phone of the authenticated user.
    """
    user = service.update_profile(session, current_user, payload)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": UserRead.model_validate(user),
    }


# -------- Admin endpoints --------


@router.get(
    "/users",
    response_model=Envelope[UserListData],
    dependencies=[Depends(require_admin)],
)
def list_users(
    filters: Annotated[UserFilters, Query()],
    session: Session = Depends(get_session),
    service: UserService = Depends(get_user_service),
):
    """
    List accounts with search and filters, plus account statistics.
    """
    users, total, stats = service.list_users(session, filters)
    return {
        "success": True,
        "data": UserListData(
            users=[UserRead.model_validate(u) for u in users],
            stats=stats,
        ),
        "pagination": Pagination.build(filters.page, filters.limit, total),
    }


@router.get(
    "/users/{user_id}",
    response_model=Envelope[UserRead],
    dependencies=[Depends(require_admin)],
)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: UserService = Depends(get_user_service),
):
    user = service.get_user(session, user_id)
    return {"success": True, "data": UserRead.model_validate(user)}


@router.put("/users/{user_id}", response_model=Envelope[UserRead])
def update_user(
    user_id: uuid.UUID,
    payload: AdminUserUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    user = service.update_user(session, admin, user_id, payload)
    return {
        "success": True,
        "message": "User updated successfully",
        "data": UserRead.model_validate(user),
    }


@router.delete("/users/{user_id}", response_model=Envelope[None])
def delete_user(
    user_id: uuid.UUID,
    permanent: bool = False,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """
    Deactivate an account, or delete it for good with `permanent=true`.
    """
    message = service.delete_user(session, admin, user_id, permanent=permanent)
    return {"success": True, "message": message}


@router.patch(
    "/users/{user_id}/reactivate",
    response_model=Envelope[UserRead],
    dependencies=[Depends(require_admin)],
)
def reactivate_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: UserService = Depends(get_user_service),
):
    user = service.reactivate_user(session, user_id)
    return {
        "success": True,
        "message": "User reactivated successfully",
        "data": UserRead.model_validate(user),
    }
