"""Pydantic request/response schemas."""

from userservice.schemas.auth import (
    CurrentUser,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from userservice.schemas.friendship import (
    AreFriendsResponse,
    FriendsCountResponse,
    FriendshipOut,
    FriendshipStatusResponse,
    FriendsPageResponse,
)
from userservice.schemas.health import HealthResponse
from userservice.schemas.user import (
    AddEmailRequest,
    AddPhoneRequest,
    AdminUserCreateRequest,
    AdminUserUpdateRequest,
    SearchUsersResponse,
    UserDetail,
    UserPublic,
    UsersListResponse,
    UserUpdateRequest,
    UserUpdateResponse,
    VerifyEmailRequest,
)

__all__ = [
    "AddEmailRequest",
    "AddPhoneRequest",
    "AdminUserCreateRequest",
    "AdminUserUpdateRequest",
    "AreFriendsResponse",
    "CurrentUser",
    "FriendsCountResponse",
    "FriendsPageResponse",
    "FriendshipOut",
    "FriendshipStatusResponse",
    "HealthResponse",
    "LoginRequest",
    "RefreshRequest",
    "RegisterRequest",
    "SearchUsersResponse",
    "TokenResponse",
    "UserDetail",
    "UserPublic",
    "UserUpdateRequest",
    "UserUpdateResponse",
    "UsersListResponse",
    "VerifyEmailRequest",
]
