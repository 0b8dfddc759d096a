"""
Background Scheduler - Social account resync and token housekeeping

This module manages periodic maintenance using APScheduler.

Jobs:
    resync_social_accounts: Re-fetch follower counts, engagement and topics
        for accounts whose last sync is older than RESYNC_INTERVAL_HOURS,
        so match scores reflect current audience numbers.
    purge_platform_tokens: Drop expired OAuth sessions from the in-memory
        token store (Redis expires its keys on its own).

Default Schedule: resync every 24 hours, purge every 15 minutes
"""

import logging
from datetime import timedelta
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from app.database import async_session
from app.services.social_accounts import SocialAccountService
from app.services.store import CreatorStore
from app.services.token_store import InMemoryTokenStore, get_token_store
from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
scheduler = AsyncIOScheduler()


async def resync_social_accounts() -> int:
    """
    Refresh stale social accounts.

    Returns:
        Number of accounts refreshed; failures are logged by the service
    """
    max_age = timedelta(hours=settings.resync_interval_hours)
    async with async_session() as db:
        service = SocialAccountService(CreatorStore(db), get_token_store())
        try:
            return await service.resync_stale_accounts(max_age)
        except Exception as e:
            logger.error(f"Social account resync failed: {e}")
            return 0


def purge_platform_tokens() -> int:
    """Evict expired platform sessions from the in-memory store."""
    store = get_token_store()
    if not isinstance(store, InMemoryTokenStore):
        return 0
    removed = store.purge_expired()
    if removed:
        logger.info(f"Purged {removed} expired platform sessions")
    return removed


def start_scheduler():
    """Start the background scheduler"""
    scheduler.add_job(
        resync_social_accounts,
        trigger=IntervalTrigger(hours=settings.resync_interval_hours),
        id="resync_social_accounts",
        replace_existing=True,
    )
    scheduler.add_job(
        purge_platform_tokens,
        trigger=IntervalTrigger(minutes=settings.token_purge_interval_minutes),
        id="purge_platform_tokens",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started: resyncing social accounts every {settings.resync_interval_hours} hours")


def stop_scheduler():
    """Stop the background scheduler"""
    scheduler.shutdown()
