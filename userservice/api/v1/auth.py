"""Register, login and refresh endpoints plus auth dependencies (get_current_user, require_admin)."""

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from userservice.api.v1.errors import to_http_exception
from userservice.core.cache import UserCache, get_cache
from userservice.core.database import get_db
from userservice.core.errors import UserNotFoundError, UserServiceError
from userservice.core.security import ACCESS_TOKEN_TYPE, decode_token
from userservice.schemas.auth import (
    CurrentUser,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from userservice.services import auth as auth_service
from userservice.services.tokens import refresh_access_token
from userservice.services.users import get_user_detail

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[UserCache, Depends(get_cache)],
) -> TokenResponse:
    """
    Create a new account and return an access token and a refresh token.
    Fails with 409 when the username or email is already in use.
    """
    try:
        _, tokens = auth_service.register(db, cache, body)
    except UserServiceError as e:
        raise to_http_exception(e) from e
    return tokens


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> TokenResponse:
    """
    Authenticate with username and password; returns a JWT access token and a refresh token.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    try:
        return auth_service.login(db, body.username, body.password)
    except UserServiceError as e:
        raise to_http_exception(e) from e


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    body: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
) -> TokenResponse:
    """Exchange a valid refresh token for a new access token. Expired or revoked tokens get 401."""
    try:
        return refresh_access_token(db, body.refresh_token)
    except UserServiceError as e:
        raise to_http_exception(e) from e


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[UserCache, Depends(get_cache)],
) -> CurrentUser:
    """
    Dependency: require a valid Bearer access JWT and return the current user. Raises 401 if
    missing, invalid, expired, or if the user no longer exists.

    The user is loaded through the read-through cache, so role changes and deletions take
    effect as soon as the write invalidates the entry.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN_TYPE)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid token payload")
    try:
        user = get_user_detail(db, cache, user_id)
    except UserNotFoundError:
        raise _unauthorized("User not found")
    return CurrentUser(id=user.id, username=user.username, role=user.role)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != "admin":
        logger.info("Admin access denied", extra={"user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
