"""Translate service-layer exceptions into HTTP errors."""

from fastapi import HTTPException, status

from userservice.core.errors import (
    FriendshipConflictError,
    FriendshipNotFoundError,
    InvalidCredentialsError,
    InvalidFriendRequestError,
    InvalidSearchError,
    InvalidTokenError,
    InvalidVerificationCodeError,
    NoChangesError,
    UserAlreadyExistsError,
    UserNotFoundError,
    UserServiceError,
    VerificationCodeNotFoundError,
)

STATUS_BY_ERROR: dict[type[UserServiceError], int] = {
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
    VerificationCodeNotFoundError: status.HTTP_404_NOT_FOUND,
    FriendshipNotFoundError: status.HTTP_404_NOT_FOUND,
    UserAlreadyExistsError: status.HTTP_409_CONFLICT,
    FriendshipConflictError: status.HTTP_409_CONFLICT,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    InvalidTokenError: status.HTTP_401_UNAUTHORIZED,
    NoChangesError: status.HTTP_400_BAD_REQUEST,
    InvalidSearchError: status.HTTP_400_BAD_REQUEST,
    InvalidVerificationCodeError: status.HTTP_400_BAD_REQUEST,
    InvalidFriendRequestError: status.HTTP_400_BAD_REQUEST,
}


def to_http_exception(error: UserServiceError) -> HTTPException:
    """Map a domain error to an HTTPException; 401s carry the Bearer challenge."""
    status_code = STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST)
    headers = (
        {"WWW-Authenticate": "Bearer"}
        if status_code == status.HTTP_401_UNAUTHORIZED
        else None
    )
    return HTTPException(status_code=status_code, detail=error.message, headers=headers)
