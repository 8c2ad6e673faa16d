"""Registration and login: credential checks and token issuance."""

import logging

from sqlalchemy.orm import Session

from userservice.core.cache import UserCache
from userservice.core.errors import InvalidCredentialsError
from userservice.core.security import verify_password
from userservice.models import User
from userservice.schemas.auth import RegisterRequest, TokenResponse
from userservice.services.accounts import commit_or_conflict, get_user_by_username
from userservice.services.tokens import (
    add_refresh_token,
    get_active_refresh_token,
    is_expired,
    issue_access_token,
    issue_token_pair,
    token_response,
)
from userservice.services.users import stage_user

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password."


def register(db: Session, cache: UserCache, body: RegisterRequest) -> tuple[User, TokenResponse]:
    """
    Create an account and return it with an access/refresh token pair.

    User and refresh token are committed together. Raises UserAlreadyExistsError
    if the username or email is taken.
    """
    user = stage_user(db, body.username, body.password, email=body.email)
    tokens = issue_token_pair(db, user)
    commit_or_conflict(db)
    cache.invalidate_searches()
    logger.info("User registered", extra={"user_id": user.id})
    return user, tokens


def authenticate(db: Session, username: str, password: str) -> User:
    """Return the user if the password matches; otherwise raise InvalidCredentialsError."""
    user = get_user_by_username(db, username)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login failed", extra={"reason": "invalid_credentials"})
        raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)
    return user


def login(db: Session, username: str, password: str) -> TokenResponse:
    """
    Authenticate and return a new access token with the user's refresh token.

    The newest non-revoked refresh token is reused while it is valid; an expired one
    is revoked and replaced.
    """
    user = authenticate(db, username, password)
    refresh_row = get_active_refresh_token(db, user.id)
    if refresh_row is not None and is_expired(refresh_row):
        refresh_row.revoked = True
        refresh_row = None
    if refresh_row is None:
        refresh_row = add_refresh_token(db, user)
    db.commit()
    logger.info("User logged in", extra={"user_id": user.id})
    return token_response(issue_access_token(user), refresh_row.token)
