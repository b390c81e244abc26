"""Trailing period returns from NAV history.

For each window the first record dated on or before ``today - days`` is the
base. Windows the history does not reach are left out of the result rather
than reported as 0.
"""

from datetime import date, datetime, timedelta
from typing import Any

from fund_tracker.services.trading_time import market_today

PERIODS = [
    {"period": "Z", "label": "近1周", "days": 7},
    {"period": "Y", "label": "近1月", "days": 30},
    {"period": "3Y", "label": "近3月", "days": 90},
    {"period": "6Y", "label": "近6月", "days": 180},
    {"period": "1N", "label": "近1年", "days": 365},
]


def _as_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value[:10], "%Y-%m-%d").date()


def calculate_period_returns(
    history: list[dict[str, Any]],
    today: date | None = None,
    periods: list[dict[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    """Compute period returns.

    Args:
        history: NAV records {date, net_value}; any order, newest is the latest.
        today: Reference date, defaults to the current exchange date.
        periods: Windows as {period, label, days}; defaults to PERIODS.

    Returns:
        [{period, label, days, change}] for the windows the history covers,
        ``change`` in percent rounded to 2 decimals.
    """
    today = today or market_today()
    records = sorted(history, key=lambda r: _as_date(r["date"]), reverse=True)
    if len(records) < 2:
        return []

    latest = records[0]["net_value"]
    if latest <= 0:
        return []

    results = []
    for p in periods or PERIODS:
        target = today - timedelta(days=p["days"])
        found = next((r for r in records if _as_date(r["date"]) <= target), None)
        if found is None or found["net_value"] <= 0:
            continue
        change = (latest - found["net_value"]) / found["net_value"] * 100
        results.append(
            {
                "period": p["period"],
                "label": p["label"],
                "days": p["days"],
                "change": round(change, 2),
            }
        )
    return results
