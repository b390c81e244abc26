"""Background task scheduler for periodic estimate refreshes."""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from fund_tracker.services.fund_data import fund_data_service
from fund_tracker.services.holdings import holding_service
from fund_tracker.services.trading_time import is_trading_time
from fund_tracker.services.watchlist import watchlist_service
from fund_tracker.models.database import async_session_factory
from fund_tracker.config import ESTIMATE_POLL_INTERVAL

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def tracked_fund_codes() -> list[str]:
    """Watchlist codes followed by any held codes not already watched."""
    async with async_session_factory() as session:
        codes = await watchlist_service.list_codes(session)
        holdings = await holding_service.list_holdings(session)
    for h in holdings:
        if h.fund_code not in codes:
            codes.append(h.fund_code)
    return codes


async def refresh_estimates():
    """Refresh estimates for all tracked funds while the market is open."""
    if not is_trading_time():
        return

    try:
        codes = await tracked_fund_codes()
    except SQLAlchemyError as e:
        logger.error(f"Failed to load tracked funds: {e}")
        return
    if not codes:
        return

    # Drop the memory copies so the tiered cache goes upstream
    for code in codes:
        fund_data_service.cache.memory.delete(f"estimate_{code}")
    estimates = await fund_data_service.get_estimates(codes)
    logger.info(f"Refreshed estimates for {len(estimates)}/{len(codes)} funds")


def start_scheduler():
    """Start the background scheduler."""
    scheduler.add_job(
        refresh_estimates,
        trigger=IntervalTrigger(seconds=ESTIMATE_POLL_INTERVAL),
        id="refresh_estimates",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, refreshing estimates every {ESTIMATE_POLL_INTERVAL}s")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
