"""Request/response schemas for user CRUD and search endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from userservice.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    USERNAME_PATTERN,
)
from userservice.schemas.auth import TokenResponse

Role = Literal["user", "admin"]

PHONE_PATTERN = r"^\+?[0-9][0-9 ()-]{4,30}$"
VERIFICATION_CODE_PATTERN = r"^[A-Za-z0-9]{6}$"

# Deepest 0-based search page; keeps LIMIT/OFFSET inside the database's integer range.
SEARCH_MAX_PAGE = 100_000


class UserPublic(BaseModel):
    """Public view of a user, safe to show to any authenticated caller."""

    model_config = {"from_attributes": True}

    id: int
    username: str


class UserDetail(BaseModel):
    """Full user record without the password hash. This is the cached representation."""

    model_config = {"from_attributes": True}

    id: int
    username: str
    email: str | None = None
    email_verified: bool = False
    phone: str | None = None
    role: str
    created_at: datetime
    updated_at: datetime


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    users: list[UserDetail]


class SearchUsersResponse(BaseModel):
    """One page of a username prefix search. Pages are 0-based."""

    users: list[UserPublic] = Field(default_factory=list)
    current_page: int
    total_items: int
    total_pages: int


class UserUpdateRequest(BaseModel):
    """Partial update of the caller's own account; omitted fields are unchanged."""

    username: str | None = Field(
        default=None,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        pattern=USERNAME_PATTERN,
    )
    password: str | None = Field(
        default=None, min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN
    )
    email: EmailStr | None = None
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)


class AdminUserUpdateRequest(UserUpdateRequest):
    """Admin update: same fields as a self-update plus role."""

    role: Role | None = None


class AdminUserCreateRequest(BaseModel):
    """Admin-created account with an explicit role."""

    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        pattern=USERNAME_PATTERN,
    )
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    email: EmailStr | None = None
    role: Role = "user"


class UserUpdateResponse(BaseModel):
    """Updated user; tokens are re-issued when the username or password changed."""

    user: UserDetail
    tokens: TokenResponse | None = None


class AddEmailRequest(BaseModel):
    email: EmailStr


class AddPhoneRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)


class VerifyEmailRequest(BaseModel):
    code: str = Field(
        ...,
        pattern=VERIFICATION_CODE_PATTERN,
        description="6-character code (A-Z, 0-9; case-insensitive) sent by email",
    )
