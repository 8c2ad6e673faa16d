"""User endpoints: self-service profile, username search, public lookup, and admin CRUD."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from userservice.api.v1.auth import get_current_user, require_admin
from userservice.api.v1.errors import to_http_exception
from userservice.core.cache import UserCache, get_cache
from userservice.core.config import settings
from userservice.core.database import get_db
from userservice.core.errors import UserServiceError
from userservice.schemas.auth import CurrentUser
from userservice.schemas.user import (
    SEARCH_MAX_PAGE,
    AddEmailRequest,
    AddPhoneRequest,
    AdminUserCreateRequest,
    AdminUserUpdateRequest,
    SearchUsersResponse,
    UserDetail,
    UserPublic,
    UserUpdateRequest,
    UserUpdateResponse,
    UsersListResponse,
    VerifyEmailRequest,
)
from userservice.services import users as user_service
from userservice.services import verification

router = APIRouter()

DbSession = Annotated[Session, Depends(get_db)]
Cache = Annotated[UserCache, Depends(get_cache)]
AuthUser = Annotated[CurrentUser, Depends(get_current_user)]
AdminUser = Annotated[CurrentUser, Depends(require_admin)]


@router.get("/me", response_model=UserDetail)
def read_me(current_user: AuthUser, db: DbSession, cache: Cache) -> UserDetail:
    """Return the authenticated user's full profile."""
    try:
        return user_service.get_user_detail(db, cache, current_user.id)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.patch("/me", response_model=UserUpdateResponse)
def update_me(
    body: UserUpdateRequest,
    current_user: AuthUser,
    db: DbSession,
    cache: Cache,
) -> UserUpdateResponse:
    """
    Partially update username, password, email or phone.

    Changing the username or password revokes existing refresh tokens and returns a new
    token pair in `tokens`. Changing the email sends a verification code to the new address.
    Returns 400 when nothing changes and 409 on a taken username/email.
    """
    try:
        return user_service.update_user(db, cache, current_user.id, body)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_me(current_user: AuthUser, db: DbSession, cache: Cache) -> None:
    """Delete the authenticated user's account."""
    user_service.delete_user(db, cache, current_user.id)


@router.post("/me/email", response_model=UserDetail)
def add_email(
    body: AddEmailRequest,
    current_user: AuthUser,
    db: DbSession,
    cache: Cache,
) -> UserDetail:
    """Set the email address (unverified) and send a 6-character verification code."""
    try:
        return verification.add_email(db, cache, current_user.id, body.email)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.post("/me/email/verify", response_model=UserDetail)
def verify_email(
    body: VerifyEmailRequest,
    current_user: AuthUser,
    db: DbSession,
    cache: Cache,
) -> UserDetail:
    """Confirm the pending verification code; 400 if it does not match, 404 if none is pending."""
    try:
        return verification.verify_email(db, cache, current_user.id, body.code)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.post("/me/phone", response_model=UserDetail)
def add_phone(
    body: AddPhoneRequest,
    current_user: AuthUser,
    db: DbSession,
    cache: Cache,
) -> UserDetail:
    """Set the phone number."""
    try:
        return user_service.set_phone(db, cache, current_user.id, body.phone)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.get("/search", response_model=SearchUsersResponse)
def search_users(
    _user: AuthUser,
    db: DbSession,
    cache: Cache,
    q: Annotated[str, Query(min_length=1, max_length=64, description="Username prefix")],
    page: Annotated[
        int, Query(ge=0, le=SEARCH_MAX_PAGE, description="0-based page number")
    ] = 0,
    size: Annotated[
        int, Query(ge=1, le=settings.SEARCH_MAX_PAGE_SIZE, description="Page size")
    ] = settings.SEARCH_DEFAULT_PAGE_SIZE,
) -> SearchUsersResponse:
    """
    Case-insensitive username prefix search with pagination. Results are cached and
    evicted on any user write. Returns 404 when no user matches.
    """
    try:
        result = user_service.search_users(db, cache, q, page, size)
    except UserServiceError as e:
        raise to_http_exception(e) from e
    if not result.users:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Users not found")
    return result


@router.get("/{user_id}", response_model=UserPublic)
def read_user(user_id: int, _user: AuthUser, db: DbSession, cache: Cache) -> UserPublic:
    """Return a user's public profile by id."""
    try:
        detail = user_service.get_user_detail(db, cache, user_id)
    except UserServiceError as e:
        raise to_http_exception(e) from e
    return UserPublic(id=detail.id, username=detail.username)


@router.get("", response_model=UsersListResponse)
def list_users(_admin: AdminUser, db: DbSession) -> UsersListResponse:
    """List all users (admin only)."""
    return UsersListResponse(users=user_service.list_users(db))


@router.post("", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
def create_user(
    body: AdminUserCreateRequest,
    _admin: AdminUser,
    db: DbSession,
    cache: Cache,
) -> UserDetail:
    """Create a user with an explicit role (admin only). 409 on duplicate username/email."""
    try:
        user = user_service.create_user(
            db, cache, body.username, body.password, email=body.email, role=body.role
        )
    except UserServiceError as e:
        raise to_http_exception(e) from e
    return UserDetail.model_validate(user)


@router.patch("/{user_id}", response_model=UserDetail)
def admin_update_user(
    user_id: int,
    body: AdminUserUpdateRequest,
    _admin: AdminUser,
    db: DbSession,
    cache: Cache,
) -> UserDetail:
    """
    Partially update any user, including role (admin only).
    The user's refresh tokens are revoked when username, password or role change.
    """
    try:
        result = user_service.update_user(db, cache, user_id, body, reissue_tokens=False)
    except UserServiceError as e:
        raise to_http_exception(e) from e
    return result.user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_user(user_id: int, _admin: AdminUser, db: DbSession, cache: Cache) -> None:
    """Delete a user (admin only). Idempotent: 204 whether or not the user existed."""
    user_service.delete_user(db, cache, user_id)
