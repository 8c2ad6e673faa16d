"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, EmailStr, Field

from userservice.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    USERNAME_PATTERN,
)


class RegisterRequest(BaseModel):
    """New account: username and password, optional email."""

    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        pattern=USERNAME_PATTERN,
        description="Username (letters, digits, '_', '.', '-')",
    )
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN, description="Password"
    )
    email: EmailStr | None = Field(default=None, description="Optional email address")


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=255, description="Username")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class RefreshRequest(BaseModel):
    """Refresh token previously returned by register or login."""

    refresh_token: str = Field(..., min_length=1, max_length=512, description="Refresh JWT")


class TokenResponse(BaseModel):
    """JWT access token (and refresh token) returned after authentication."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(default=None, description="Refresh token for POST /auth/refresh")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class CurrentUser(BaseModel):
    """Authenticated user (id, username, role) for dependency injection."""

    model_config = {"from_attributes": True}

    id: int
    username: str
    role: str
