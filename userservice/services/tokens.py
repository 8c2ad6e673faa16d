"""Access/refresh token issuance, refresh, and revocation."""

import logging
from datetime import UTC, datetime

import jwt
from sqlalchemy.orm import Session

from userservice.core.config import settings
from userservice.core.errors import InvalidTokenError
from userservice.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from userservice.models import RefreshToken, User
from userservice.schemas.auth import TokenResponse

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite drops tzinfo) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_expired(token: RefreshToken, now: datetime | None = None) -> bool:
    return as_utc(token.expires_at) <= (now or datetime.now(UTC))


def issue_access_token(user: User) -> str:
    return create_access_token(user_id=user.id, username=user.username, role=user.role)


def token_response(access_token: str, refresh_token: str | None) -> TokenResponse:
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )


def add_refresh_token(db: Session, user: User) -> RefreshToken:
    """Create and stage a refresh token row for user. The caller commits."""
    value, expires_at = create_refresh_token(user.id)
    row = RefreshToken(token=value, user_id=user.id, expires_at=expires_at, revoked=False)
    db.add(row)
    return row


def issue_token_pair(db: Session, user: User) -> TokenResponse:
    """Issue an access token and a new persisted refresh token. The caller commits."""
    refresh_row = add_refresh_token(db, user)
    return token_response(issue_access_token(user), refresh_row.token)


def get_active_refresh_token(db: Session, user_id: int) -> RefreshToken | None:
    """Return the newest non-revoked refresh token of a user, expired or not."""
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .order_by(RefreshToken.id.desc())
        .first()
    )


def revoke_all_refresh_tokens(db: Session, user_id: int) -> int:
    """Mark every refresh token of a user as revoked. The caller commits."""
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .update({RefreshToken.revoked: True}, synchronize_session=False)
    )


def _revoke_if_stored(db: Session, token_value: str) -> None:
    stored = db.query(RefreshToken).filter(RefreshToken.token == token_value).first()
    if stored is not None and not stored.revoked:
        stored.revoked = True
        db.commit()


def refresh_access_token(db: Session, token_value: str) -> TokenResponse:
    """
    Exchange a valid refresh token for a new access token.

    The refresh token itself is returned unchanged. An expired token is revoked
    and rejected; the client must log in again.
    """
    try:
        decode_token(token_value, expected_type=REFRESH_TOKEN_TYPE)
    except jwt.ExpiredSignatureError as e:
        _revoke_if_stored(db, token_value)
        raise InvalidTokenError("Refresh token has expired") from e
    except jwt.PyJWTError as e:
        raise InvalidTokenError("Invalid refresh token") from e

    stored = db.query(RefreshToken).filter(RefreshToken.token == token_value).first()
    if stored is None:
        raise InvalidTokenError("Refresh token not found")
    if stored.revoked:
        raise InvalidTokenError("Refresh token has been revoked")
    if is_expired(stored):
        stored.revoked = True
        db.commit()
        raise InvalidTokenError("Refresh token has expired")

    user = stored.user
    logger.info("Access token refreshed", extra={"user_id": user.id})
    return token_response(issue_access_token(user), stored.token)
