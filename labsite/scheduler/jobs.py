"""APScheduler jobs: nightly archiving of expired accounts, hourly purge of stale reset tokens."""

import logging
from datetime import datetime

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger

from labsite.config import get_settings
from labsite.infrastructure import database

settings = get_settings()
logger = logging.getLogger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=tz)


def _user_repository(db):
    from labsite.domain.models.user import User
    from labsite.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

    return SQLAlchemyUserRepository(db, User)


async def archive_expired_accounts_job():
    """Nightly job: archive accounts whose expiration date has been reached."""
    from labsite.application.services.user_service import archive_expired_accounts

    logger.info(f"Running account expiration job at {datetime.now(tz).strftime('%d/%m/%Y %H:%M')}")

    db = database.SessionLocal()
    try:
        count = archive_expired_accounts(_user_repository(db))
        logger.info(f"Account expiration job archived {count} account(s)")
    except Exception as e:
        logger.error(f"Account expiration job failed: {e}")
    finally:
        db.close()


async def purge_expired_reset_tokens_job():
    """Hourly job: clear password-reset tokens that can no longer be redeemed."""
    from labsite.application.services.user_service import purge_expired_reset_tokens

    db = database.SessionLocal()
    try:
        count = purge_expired_reset_tokens(_user_repository(db))
        logger.info(f"Reset token purge cleared {count} token(s)")
    except Exception as e:
        logger.error(f"Reset token purge failed: {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the APScheduler with the account housekeeping jobs."""
    scheduler.add_job(
        archive_expired_accounts_job,
        trigger=CronTrigger(hour=2, minute=0, timezone=tz),
        id="archive_expired_accounts",
        name="Archive expired accounts (daily 02:00)",
        replace_existing=True,
    )

    scheduler.add_job(
        purge_expired_reset_tokens_job,
        trigger=IntervalTrigger(hours=1, timezone=tz),
        id="purge_expired_reset_tokens",
        name="Purge expired reset tokens (hourly)",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started: account expiration daily at 02:00 {settings.TIMEZONE}, reset token purge hourly")


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
