"""Email address registration and verification codes."""

import logging
import secrets

from sqlalchemy.orm import Session

from userservice.core.cache import UserCache
from userservice.core.config import settings
from userservice.core.errors import (
    InvalidVerificationCodeError,
    VerificationCodeNotFoundError,
)
from userservice.models import VerificationCode
from userservice.schemas.user import UserDetail
from userservice.services.accounts import commit_or_conflict, ensure_available, get_user_row

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 6


def generate_code() -> str:
    """Return a random 6-character code from A-Z0-9."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def _revoke_active_codes(db: Session, user_id: int) -> int:
    return (
        db.query(VerificationCode)
        .filter(VerificationCode.user_id == user_id, VerificationCode.revoked.is_(False))
        .update({VerificationCode.revoked: True}, synchronize_session=False)
    )


def stage_code(db: Session, user_id: int, email: str) -> str:
    """Revoke pending codes and add a fresh one for email. The caller commits, then delivers."""
    _revoke_active_codes(db, user_id)
    code = generate_code()
    db.add(VerificationCode(user_id=user_id, email=email, code=code, revoked=False))
    return code


def deliver_code(email: str, code: str) -> None:
    """Hand the code to the outbound channel; only the log sink exists in this service."""
    if settings.APP_ENV == "dev":
        logger.info("Verification code for %s: %s", email, code)
    else:
        logger.info("Verification code issued", extra={"email": email})


def codes_match(expected: str, submitted: str) -> bool:
    """Constant-time, case-insensitive comparison; any non-ASCII input simply fails to match."""
    return secrets.compare_digest(
        expected.encode("utf-8"), submitted.strip().upper().encode("utf-8")
    )


def add_email(db: Session, cache: UserCache, user_id: int, email: str) -> UserDetail:
    """
    Set the user's email, mark it unverified, and issue a fresh verification code.

    Any earlier pending code is revoked. Raises UserAlreadyExistsError if another
    user owns the address.
    """
    user = get_user_row(db, user_id)
    ensure_available(db, email=email, exclude_id=user.id)
    user.email = email
    user.email_verified = False
    code = stage_code(db, user.id, email)
    commit_or_conflict(db)
    cache.invalidate_after_write(user.id)
    deliver_code(email, code)
    return UserDetail.model_validate(user)


def verify_email(db: Session, cache: UserCache, user_id: int, code: str) -> UserDetail:
    """
    Confirm the pending code. Codes compare case-insensitively.

    A matching code marks the email verified and is revoked; a wrong code leaves it pending.
    """
    user = get_user_row(db, user_id)
    pending = (
        db.query(VerificationCode)
        .filter(VerificationCode.user_id == user.id, VerificationCode.revoked.is_(False))
        .order_by(VerificationCode.id.desc())
        .first()
    )
    if pending is None or pending.email != user.email:
        raise VerificationCodeNotFoundError("No pending verification code")
    if not codes_match(pending.code, code):
        raise InvalidVerificationCodeError("Verification code is invalid")

    user.email_verified = True
    pending.revoked = True
    db.commit()
    cache.invalidate_user(user.id)
    logger.info("Email verified", extra={"user_id": user.id})
    return UserDetail.model_validate(user)
