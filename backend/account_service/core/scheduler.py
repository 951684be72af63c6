"""
Background scheduler for periodic tasks.

- Purge expired session tokens: runs every TOKEN_PURGE_INTERVAL_HOURS hours
  (only does anything when tokens are issued with an expiry)
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from account_service.core.config import settings
from account_service.core.database import SessionLocal
from account_service.core.errors import PersistenceError
from account_service.services.token_service import get_token_service
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def purge_expired_tokens_job(session_factory=SessionLocal):
    """
    Delete Token Store rows whose expiry has passed.

    Expired tokens already fail to resolve; this only reclaims their rows.
    """
    db = session_factory()
    try:
        deleted = get_token_service().purge_expired(db)
        if deleted > 0:
            logger.info(f"Purge job completed: Deleted {deleted} expired tokens")
        else:
            logger.info("Purge job completed: No expired tokens found")
        return deleted
    except PersistenceError:
        logger.error("Error in purge_expired_tokens_job")
        return 0
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    Called from the FastAPI lifespan on startup.
    """
    if not scheduler.running:
        scheduler.add_job(
            purge_expired_tokens_job,
            trigger=IntervalTrigger(hours=settings.TOKEN_PURGE_INTERVAL_HOURS),
            id="purge_expired_tokens",
            name="Purge expired tokens",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            f"Background scheduler started. Token purge scheduled every "
            f"{settings.TOKEN_PURGE_INTERVAL_HOURS} hours."
        )


def stop_scheduler():
    """
    Stop the background scheduler.

    Called from the FastAPI lifespan on shutdown.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
