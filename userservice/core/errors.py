"""Domain exceptions raised by services and translated to HTTP errors by the routes."""


class UserServiceError(Exception):
    """Base class for expected, client-facing failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UserNotFoundError(UserServiceError):
    """Raised when no user matches the requested id or username."""


class UserAlreadyExistsError(UserServiceError):
    """Raised when a username or email is already taken."""


class InvalidCredentialsError(UserServiceError):
    """Raised when login credentials do not match a stored user."""


class InvalidTokenError(UserServiceError):
    """Raised when a token is malformed, expired, revoked, or of the wrong type."""


class NoChangesError(UserServiceError):
    """Raised when an update request would not change anything."""


class InvalidSearchError(UserServiceError):
    """Raised when a search prefix is blank after trimming."""


class VerificationCodeNotFoundError(UserServiceError):
    """Raised when the user has no pending email verification code."""


class InvalidVerificationCodeError(UserServiceError):
    """Raised when a submitted verification code does not match the pending one."""


class FriendshipNotFoundError(UserServiceError):
    """Raised when the friend request or friendship an action targets does not exist."""


class FriendshipConflictError(UserServiceError):
    """Raised when a friend request collides with an existing link between the two users."""


class InvalidFriendRequestError(UserServiceError):
    """Raised when a user targets themselves with a friend request or block."""
