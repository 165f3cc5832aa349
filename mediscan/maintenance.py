"""Reclaim expired login sessions.

Run periodically, e.g. from cron: ``python -m mediscan.maintenance``.
"""

import logging

from mediscan.database import SessionLocal
from mediscan.services.auth_store import AuthRepository, SqlAuthRepository
from mediscan.timeutil import utcnow

logger = logging.getLogger(__name__)


def purge_expired_sessions(repository: AuthRepository, now=None) -> int:
    removed = repository.delete_expired_sessions(now or utcnow())
    logger.info("Removed %d expired sessions", removed)
    return removed


def main() -> int:
    db = SessionLocal()
    try:
        return purge_expired_sessions(SqlAuthRepository(db))
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
