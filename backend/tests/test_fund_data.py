"""Tests for the cached fund data service."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from fund_tracker.exceptions import FundDataError
from fund_tracker.services.cache import CacheService, TieredCache
from fund_tracker.services.fund_data import FundDataService

ESTIMATE = {
    "fund_code": "000001",
    "fund_name": "华夏成长混合",
    "last_nav": 1.234,
    "nav_date": "2026-02-13",
    "est_nav": 1.2468,
    "est_change_pct": 1.04,
    "est_time": "2026-02-16 14:30",
}


class FakePersisted:
    def __init__(self, data=None):
        self.data = dict(data or {})

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value


def make_service(market=None, persisted=None, is_open=True):
    market = market or MagicMock()
    cache = TieredCache(CacheService(), persisted or FakePersisted(), is_open=lambda: is_open)
    return FundDataService(market_data=market, cache=cache)


@pytest.mark.asyncio
async def test_get_estimates_omits_unavailable():
    market = MagicMock()

    async def fetch(code):
        if code == "000001":
            return ESTIMATE
        raise FundDataError("Estimate not available", code)

    market.fetch_estimate = AsyncMock(side_effect=fetch)
    service = make_service(market)

    results = await service.get_estimates(["000001", "999999"])
    assert results == {"000001": ESTIMATE}


@pytest.mark.asyncio
async def test_get_estimate_uses_snapshot_when_closed():
    market = MagicMock()
    market.fetch_estimate = AsyncMock()
    service = make_service(
        market, FakePersisted({"estimate_000001": ESTIMATE}), is_open=False
    )

    assert await service.get_estimate("000001") == ESTIMATE
    market.fetch_estimate.assert_not_awaited()


@pytest.mark.asyncio
async def test_net_value_history_empty_when_unavailable():
    market = MagicMock()
    market.fetch_net_value_history = AsyncMock(side_effect=FundDataError("down"))
    service = make_service(market)
    assert await service.get_net_value_history("000001") == []


@pytest.mark.asyncio
async def test_long_history_falls_back_to_lsjz():
    market = MagicMock()
    market.fetch_net_worth_trend = AsyncMock(return_value=[])
    market.fetch_net_value_history = AsyncMock(
        return_value=[{"date": "2026-02-13", "net_value": 1.2}]
    )
    service = make_service(market)

    history = await service.get_long_history("000001")
    assert history == [{"date": "2026-02-13", "net_value": 1.2}]
    market.fetch_net_value_history.assert_awaited_once_with("000001", 365)


@pytest.mark.asyncio
async def test_period_returns_cached_in_memory():
    market = MagicMock()
    market.fetch_net_worth_trend = AsyncMock(
        return_value=[
            {"date": "2026-02-16", "net_value": 1.02},
            {"date": "2026-02-09", "net_value": 1.00},
        ]
    )
    service = make_service(market)

    first = await service.get_period_returns("000001", today=date(2026, 2, 16))
    second = await service.get_period_returns("000001", today=date(2026, 2, 16))

    assert first == second
    assert first[0]["change"] == 2.0
    market.fetch_net_worth_trend.assert_awaited_once()


@pytest.mark.asyncio
async def test_fee_info_cached():
    market = MagicMock()
    market.fetch_fee_info = AsyncMock(return_value={"fund_code": "000001", "share_class": "C"})
    service = make_service(market)

    await service.get_fee_info("000001")
    await service.get_fee_info("000001")
    market.fetch_fee_info.assert_awaited_once()


@pytest.mark.asyncio
async def test_clear_fund_cache_forces_refetch():
    market = MagicMock()
    market.fetch_estimate = AsyncMock(return_value=ESTIMATE)
    service = make_service(market)

    await service.get_estimate("000001")
    await service.get_estimate("000001")
    assert market.fetch_estimate.await_count == 1

    service.clear_fund_cache("000001")
    await service.get_estimate("000001")
    assert market.fetch_estimate.await_count == 2
