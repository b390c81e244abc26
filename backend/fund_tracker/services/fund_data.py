"""Cached fund data access.

Every upstream read goes through the tiered cache so that outside trading
hours, or when the live request fails, the last good copy is served instead
of an error. Nothing here raises on upstream trouble: the worst case is an
empty result.
"""

import asyncio
import logging
from datetime import date
from typing import Any

from fund_tracker.config import (
    ESTIMATE_CACHE_TTL,
    FUND_INFO_CACHE_TTL,
    MARKET_INDEX_CACHE_TTL,
    NET_VALUE_CACHE_TTL,
    RANKING_CACHE_TTL,
)
from fund_tracker.services.cache import TieredCache, tiered_cache
from fund_tracker.services.market_data import MarketDataService, market_data_service
from fund_tracker.services.period_returns import calculate_period_returns

logger = logging.getLogger(__name__)

PERIOD_HISTORY_DAYS = 400


def _is_estimate(data: Any) -> bool:
    return isinstance(data, dict) and bool(data.get("fund_code"))


def _is_nonempty_list(data: Any) -> bool:
    return isinstance(data, list) and len(data) > 0


class FundDataService:
    """Fund estimates, history, returns and market lists behind the tiered cache."""

    def __init__(
        self,
        market_data: MarketDataService = market_data_service,
        cache: TieredCache = tiered_cache,
    ):
        self.market_data = market_data
        self.cache = cache

    async def get_estimate(self, fund_code: str) -> dict[str, Any] | None:
        return await self.cache.fetch(
            f"estimate_{fund_code}",
            lambda: self.market_data.fetch_estimate(fund_code),
            ttl=ESTIMATE_CACHE_TTL,
            validator=_is_estimate,
        )

    async def get_estimates(self, fund_codes: list[str]) -> dict[str, dict[str, Any]]:
        """Estimates for many funds; codes with neither live nor cached data are absent."""
        results = await asyncio.gather(*(self.get_estimate(code) for code in fund_codes))
        missing = [code for code, est in zip(fund_codes, results) if est is None]
        if missing:
            logger.info(f"No estimate available for {len(missing)} funds: {missing}")
        return {code: est for code, est in zip(fund_codes, results) if est is not None}

    async def get_net_value_history(
        self, fund_code: str, page_size: int = 30
    ) -> list[dict[str, Any]]:
        """Official NAV records, newest first."""
        data = await self.cache.fetch(
            f"netvalue_{fund_code}_{page_size}",
            lambda: self.market_data.fetch_net_value_history(fund_code, page_size),
            ttl=NET_VALUE_CACHE_TTL,
            validator=_is_nonempty_list,
        )
        return data or []

    async def get_long_history(self, fund_code: str) -> list[dict[str, Any]]:
        """About PERIOD_HISTORY_DAYS records, newest first, for period returns."""
        trend = await self.cache.fetch(
            f"trend_{fund_code}",
            lambda: self.market_data.fetch_net_worth_trend(fund_code),
            ttl=NET_VALUE_CACHE_TTL,
            validator=_is_nonempty_list,
        )
        if trend:
            return trend[:PERIOD_HISTORY_DAYS]
        return await self.get_net_value_history(fund_code, 365)

    async def get_period_returns(
        self, fund_code: str, today: date | None = None
    ) -> list[dict[str, Any]]:
        key = f"period_{fund_code}"
        cached = self.cache.memory.get(key)
        if cached is not None:
            return cached
        history = await self.get_long_history(fund_code)
        results = calculate_period_returns(history, today=today)
        if results:
            self.cache.memory.set(key, results, NET_VALUE_CACHE_TTL)
        return results

    async def get_fund_ranking(
        self, sort_type: str = "r", order: str = "desc", page_size: int = 20
    ) -> list[dict[str, Any]]:
        data = await self.cache.fetch(
            f"ranking_{sort_type}_{order}_{page_size}",
            lambda: self.market_data.fetch_fund_ranking(sort_type, order, page_size),
            ttl=RANKING_CACHE_TTL,
            validator=_is_nonempty_list,
        )
        return data or []

    async def get_market_indices(self) -> list[dict[str, Any]]:
        data = await self.cache.fetch(
            "market_indices",
            self.market_data.fetch_market_indices,
            ttl=MARKET_INDEX_CACHE_TTL,
            validator=_is_nonempty_list,
        )
        return data or []

    async def get_fee_info(self, fund_code: str) -> dict[str, Any]:
        key = f"fee_{fund_code}"
        cached = self.cache.memory.get(key)
        if cached is not None:
            return cached
        info = await self.market_data.fetch_fee_info(fund_code)
        self.cache.memory.set(key, info, FUND_INFO_CACHE_TTL)
        return info

    def clear_fund_cache(self, fund_code: str) -> None:
        """Drop memory entries for one fund so the next read goes upstream."""
        for prefix in ("estimate", "netvalue", "trend", "period", "fee"):
            self.cache.memory.delete_prefix(f"{prefix}_{fund_code}")


fund_data_service = FundDataService()
