"""Token cleanup: delete stale refresh tokens and revoked verification codes."""

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from sqlalchemy import or_
from sqlalchemy.orm import Session

from userservice.models import RefreshToken, VerificationCode

if TYPE_CHECKING:
    from userservice.core.config import Settings

logger = logging.getLogger(__name__)


def run_token_cleanup(session: Session, settings: "Settings") -> tuple[int, int]:
    """
    Delete refresh tokens that expired more than TOKEN_RETENTION_HOURS ago or that are revoked
    and were issued before that cutoff, plus revoked verification codes older than the cutoff.

    Returns (refresh_tokens_deleted, codes_deleted). Idempotent: safe to run repeatedly.
    """
    if not settings.TOKEN_CLEANUP_ENABLED:
        logger.info("Token cleanup is disabled (TOKEN_CLEANUP_ENABLED=false); skipping.")
        return (0, 0)

    cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.TOKEN_RETENTION_HOURS)
    tokens_deleted = (
        session.query(RefreshToken)
        .filter(
            or_(
                RefreshToken.expires_at < cutoff,
                (RefreshToken.revoked.is_(True)) & (RefreshToken.created_at < cutoff),
            )
        )
        .delete(synchronize_session=False)
    )
    codes_deleted = (
        session.query(VerificationCode)
        .filter(VerificationCode.revoked.is_(True), VerificationCode.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if tokens_deleted or codes_deleted:
        logger.info(
            "Token cleanup run: cutoff=%s, refresh_tokens_deleted=%s, codes_deleted=%s",
            cutoff.isoformat(),
            tokens_deleted,
            codes_deleted,
        )
    return (tokens_deleted, codes_deleted)
