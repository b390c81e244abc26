"""A-share trading session checks.

Pure functions of the exchange clock (MARKET_TZ), independent of the server's
timezone. Naive datetimes are taken as exchange time. Public holidays are not
modelled: a weekday holiday counts as a trading day.
"""

from datetime import date, datetime

from fund_tracker.config import MARKET_TZ, TRADING_START, TRADING_END


def market_now(now: datetime | None = None) -> datetime:
    if now is None:
        return datetime.now(MARKET_TZ)
    if now.tzinfo is not None:
        return now.astimezone(MARKET_TZ)
    return now


def is_trading_time(now: datetime | None = None) -> bool:
    """Return True on weekdays between TRADING_START (inclusive) and TRADING_END (exclusive)."""
    now = market_now(now)
    if now.weekday() >= 5:  # Saturday or Sunday
        return False
    current_time = now.strftime("%H:%M")
    return TRADING_START <= current_time < TRADING_END


def market_today(now: datetime | None = None) -> date:
    return market_now(now).date()


def today_str(now: datetime | None = None) -> str:
    return market_now(now).strftime("%Y-%m-%d")
