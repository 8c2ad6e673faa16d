"""
CLI entrypoint for the token cleanup job. Run from cron, e.g.:

  python -m userservice.token_cleanup

Or hourly: 0 * * * * cd /path/to/user-service && .venv/bin/python -m userservice.token_cleanup
"""

import logging
import sys

from userservice.core.config import get_settings
from userservice.core.database import SessionLocal
from userservice.core.logging import configure_logging
from userservice.services.token_cleanup import run_token_cleanup

logger = logging.getLogger(__name__)


def main() -> int:
    """Run cleanup: delete stale refresh tokens and revoked verification codes."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    db = SessionLocal()
    try:
        tokens_deleted, codes_deleted = run_token_cleanup(db, settings)
        logger.info(
            "Token cleanup completed: refresh_tokens_deleted=%s, codes_deleted=%s",
            tokens_deleted,
            codes_deleted,
        )
        return 0
    except Exception as e:
        logger.exception("Token cleanup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
