"""Tests for fund, chart and market API endpoints."""

import httpx
import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from httpx import AsyncClient, ASGITransport

from fund_tracker.api import chart as chart_api
from fund_tracker.api import fund as fund_api
from fund_tracker.api import market as market_api
from fund_tracker.main import app
from fund_tracker.services.cache import CacheService, TieredCache
from fund_tracker.services.fund_data import FundDataService
from fund_tracker.services.market_data import MarketDataService

ESTIMATE = {
    "fund_code": "000001",
    "fund_name": "华夏成长混合",
    "last_nav": 1.234,
    "nav_date": "2026-02-13",
    "est_nav": 1.2468,
    "est_change_pct": 1.04,
    "est_time": "2026-02-16 14:30",
}

HISTORY = [
    {"date": "2026-02-13", "net_value": 1.234, "total_value": 3.12, "change_rate": 0.52},
    {"date": "2026-02-12", "net_value": 1.2276, "total_value": 3.1136, "change_rate": -0.1},
]


def client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class EmptyPersisted:
    async def get(self, key):
        return None

    async def set(self, key, value):
        pass


def upstream_service(handler) -> FundDataService:
    """FundDataService whose upstream replies come from ``handler``."""
    return FundDataService(
        MarketDataService(transport=httpx.MockTransport(handler)),
        TieredCache(CacheService(), EmptyPersisted(), is_open=lambda: True),
    )


@pytest.mark.asyncio
async def test_health():
    async with client() as c:
        resp = await c.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_get_estimate():
    with patch(
        "fund_tracker.api.fund.fund_data_service.get_estimate",
        new=AsyncMock(return_value=ESTIMATE),
    ), patch("fund_tracker.api.fund.is_trading_time", return_value=True):
        async with client() as c:
            resp = await c.get("/api/fund/000001/estimate")
    assert resp.status_code == 200
    data = resp.json()
    assert data["est_nav"] == 1.2468
    assert data["trading"] is True


@pytest.mark.asyncio
async def test_get_estimate_not_available():
    with patch(
        "fund_tracker.api.fund.fund_data_service.get_estimate",
        new=AsyncMock(return_value=None),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/999999/estimate")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_estimates_keeps_request_order():
    other = {**ESTIMATE, "fund_code": "110022", "fund_name": "易方达消费行业股票"}
    mock = AsyncMock(return_value={"000001": ESTIMATE, "110022": other})
    with patch("fund_tracker.api.fund.fund_data_service.get_estimates", new=mock):
        async with client() as c:
            resp = await c.get("/api/fund/estimates", params={"codes": "110022, 000001,999999"})
    assert resp.status_code == 200
    assert [e["fund_code"] for e in resp.json()] == ["110022", "000001"]
    mock.assert_awaited_once_with(["110022", "000001", "999999"])


@pytest.mark.asyncio
async def test_nav_history():
    with patch(
        "fund_tracker.api.fund.fund_data_service.get_net_value_history",
        new=AsyncMock(return_value=HISTORY),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/000001/nav-history", params={"size": 2})
    assert resp.status_code == 200
    assert resp.json()[0]["date"] == "2026-02-13"


@pytest.mark.asyncio
async def test_period_returns():
    returns = [{"period": "Z", "label": "近1周", "days": 7, "change": 2.0}]
    with patch(
        "fund_tracker.api.fund.fund_data_service.get_period_returns",
        new=AsyncMock(return_value=returns),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/000001/period-returns")
    assert resp.json() == returns


@pytest.mark.asyncio
async def test_fee_info():
    from fund_tracker.services.fees import default_fee_info

    with patch(
        "fund_tracker.api.fund.fund_data_service.get_fee_info",
        new=AsyncMock(return_value=default_fee_info("000001")),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/000001/fee-info")
    assert resp.status_code == 200
    assert resp.json()["sell_fee_rates"][-1]["max_days"] is None


@pytest.mark.asyncio
async def test_search():
    results = [{"fund_code": "000001", "fund_name": "华夏成长混合", "fund_type": "混合型-偏股"}]
    with patch(
        "fund_tracker.api.fund.market_data_service.search_funds",
        new=MagicMock(return_value=results),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/search", params={"q": "华夏"})
    assert resp.json() == results


@pytest.mark.asyncio
async def test_refresh_clears_cache():
    with patch(
        "fund_tracker.api.fund.fund_data_service.clear_fund_cache"
    ) as clear, patch(
        "fund_tracker.api.fund.fund_data_service.get_estimate",
        new=AsyncMock(return_value=ESTIMATE),
    ):
        async with client() as c:
            resp = await c.post("/api/fund/000001/refresh")
    assert resp.json() == {"fund_code": "000001", "refreshed": True}
    clear.assert_called_once_with("000001")


@pytest.mark.asyncio
async def test_live_chart():
    with patch(
        "fund_tracker.api.chart.fund_data_service.get_net_value_history",
        new=AsyncMock(return_value=HISTORY),
    ), patch(
        "fund_tracker.api.chart.fund_data_service.get_estimate",
        new=AsyncMock(return_value=ESTIMATE),
    ), patch("fund_tracker.api.chart.today_str", return_value="2026-02-16"):
        async with client() as c:
            resp = await c.get("/api/fund/000001/chart", params={"days": 2, "live": True})
    assert resp.status_code == 200
    data = resp.json()
    assert [p["date"] for p in data["series"]] == ["2026-02-12", "2026-02-13", "2026-02-16"]
    assert data["series"][-1]["value"] == 1.2468
    assert data["y_min"] < 1.2276
    assert data["y_max"] > 1.2468


@pytest.mark.asyncio
async def test_chart_without_history_uses_last_close():
    with patch(
        "fund_tracker.api.chart.fund_data_service.get_net_value_history",
        new=AsyncMock(return_value=[]),
    ), patch(
        "fund_tracker.api.chart.fund_data_service.get_estimate",
        new=AsyncMock(return_value=ESTIMATE),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/000001/chart")
    series = resp.json()["series"]
    assert len(series) == 1
    assert series[0]["value"] == 1.234


@pytest.mark.asyncio
async def test_chart_svg():
    with patch(
        "fund_tracker.api.chart.fund_data_service.get_net_value_history",
        new=AsyncMock(return_value=HISTORY),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/000001/chart.svg")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("image/svg+xml")
    assert resp.text.startswith("<svg")


@pytest.mark.asyncio
async def test_kline():
    with patch(
        "fund_tracker.api.chart.fund_data_service.get_net_value_history",
        new=AsyncMock(return_value=HISTORY),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/000001/kline", params={"days": 2})
    candles = resp.json()
    assert len(candles) == 1
    assert candles[0]["close"] == 1.234


@pytest.mark.asyncio
async def test_market_ranking():
    items = [
        {
            "fund_code": "000001", "fund_name": "华夏成长混合", "nav_date": "2026-02-13",
            "net_value": 1.234, "day_change": 0.52, "week_change": 1.1,
            "month_change": 2.3, "year_change": 12.3,
        }
    ]
    mock = AsyncMock(return_value=items)
    with patch("fund_tracker.api.market.fund_data_service.get_fund_ranking", new=mock):
        async with client() as c:
            resp = await c.get("/api/market/ranking", params={"sort": "1nzf", "size": 10})
            bad = await c.get("/api/market/ranking", params={"sort": "bogus"})
    assert resp.json() == items
    mock.assert_awaited_once_with("1nzf", "desc", 10)
    assert bad.status_code == 422


@pytest.mark.asyncio
async def test_market_indices():
    indices = [{"code": "000001", "name": "上证指数", "current": 3300.12, "change": 27.8, "change_pct": 0.85}]
    with patch(
        "fund_tracker.api.market.fund_data_service.get_market_indices",
        new=AsyncMock(return_value=indices),
    ):
        async with client() as c:
            resp = await c.get("/api/market/indices")
    assert resp.json() == indices


@pytest.mark.asyncio
async def test_live_chart_animates_from_previous_point():
    chart_api.fund_data_service.cache.memory.delete("chart_live_519674")
    first = {**ESTIMATE, "fund_code": "519674", "est_nav": 1.24}
    second = {**ESTIMATE, "fund_code": "519674", "est_nav": 1.25}
    with patch(
        "fund_tracker.api.chart.fund_data_service.get_net_value_history",
        new=AsyncMock(return_value=HISTORY),
    ), patch(
        "fund_tracker.api.chart.fund_data_service.get_estimate",
        new=AsyncMock(side_effect=[first, second, second]),
    ), patch("fund_tracker.api.chart.today_str", return_value="2026-02-16"):
        async with client() as c:
            params = {"days": 2, "live": True}
            opening = (await c.get("/api/fund/519674/chart", params=params)).json()
            moved = (await c.get("/api/fund/519674/chart", params=params)).json()
            unchanged = (await c.get("/api/fund/519674/chart", params=params)).json()

    assert opening["animation"] == []
    steps = moved["animation"]
    assert len(steps) == 10
    assert 1.24 < steps[0] < steps[-1]
    assert steps[-1] == pytest.approx(1.25)
    assert unchanged["animation"] == []


@pytest.mark.asyncio
async def test_static_chart_has_no_animation():
    with patch(
        "fund_tracker.api.chart.fund_data_service.get_net_value_history",
        new=AsyncMock(return_value=HISTORY),
    ):
        async with client() as c:
            resp = await c.get("/api/fund/000001/chart")
    assert resp.json()["animation"] == []


@pytest.mark.asyncio
async def test_sell_fee_uses_fund_fee_tiers():
    from fund_tracker.services.fees import default_fee_info

    with patch(
        "fund_tracker.api.fund.fund_data_service.get_fee_info",
        new=AsyncMock(return_value=default_fee_info("000001")),
    ):
        async with client() as c:
            short = await c.get(
                "/api/fund/000001/sell-fee",
                params={"shares": 1000, "net_value": 1.5, "holding_days": 3},
            )
            long = await c.get(
                "/api/fund/000001/sell-fee",
                params={"shares": 1000, "net_value": 1.5, "holding_days": 800},
            )
    assert short.status_code == 200
    assert short.json()["rate"] == 1.5
    assert short.json()["fee"] == 22.5
    assert short.json()["net_amount"] == 1477.5
    assert long.json()["fee"] == 0.0


@pytest.mark.asyncio
async def test_sell_fee_defaults_to_estimate():
    from fund_tracker.services.fees import default_fee_info

    with patch(
        "fund_tracker.api.fund.fund_data_service.get_fee_info",
        new=AsyncMock(return_value=default_fee_info("000001")),
    ), patch(
        "fund_tracker.api.fund.fund_data_service.get_estimate",
        new=AsyncMock(return_value={**ESTIMATE, "est_nav": 2.0}),
    ):
        async with client() as c:
            resp = await c.get(
                "/api/fund/000001/sell-fee", params={"shares": 100, "holding_days": 10}
            )
    data = resp.json()
    assert data["net_value"] == 2.0
    assert data["rate"] == 0.75
    assert data["fee"] == 1.5


@pytest.mark.asyncio
async def test_sell_fee_without_price():
    with patch(
        "fund_tracker.api.fund.fund_data_service.get_estimate",
        new=AsyncMock(return_value=None),
    ):
        async with client() as c:
            missing = await c.get(
                "/api/fund/999999/sell-fee", params={"shares": 100, "holding_days": 10}
            )
            invalid = await c.get(
                "/api/fund/999999/sell-fee", params={"shares": 0, "holding_days": 10}
            )
    assert missing.status_code == 404
    assert invalid.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["null", "[1]", '{"data": {"diff": [null]}}'])
async def test_market_indices_malformed_upstream_reply(body):
    service = upstream_service(lambda r: httpx.Response(200, text=body))
    with patch.object(market_api, "fund_data_service", service):
        async with client() as c:
            resp = await c.get("/api/market/indices")
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_market_ranking_malformed_upstream_rows():
    text = 'var rankData = {datas:[7, "000001,华夏成长混合,HXCZHH,2026-02-13,1.2340"]};'
    service = upstream_service(lambda r: httpx.Response(200, text=text))
    with patch.object(market_api, "fund_data_service", service):
        async with client() as c:
            resp = await c.get("/api/market/ranking")
    assert resp.status_code == 200
    assert [i["fund_code"] for i in resp.json()] == ["000001"]


@pytest.mark.asyncio
async def test_fee_info_malformed_upstream_reply():
    service = upstream_service(lambda r: httpx.Response(200, text='feeCallback({"Datas": [1]})'))
    with patch.object(fund_api, "fund_data_service", service):
        async with client() as c:
            resp = await c.get("/api/fund/000001/fee-info")
    assert resp.status_code == 200
    assert resp.json()["buy_fee_rate"] == 0.15
    assert resp.json()["share_class"] == "A"


@pytest.mark.asyncio
async def test_estimate_non_object_upstream_reply():
    service = upstream_service(lambda r: httpx.Response(200, text="jsonpgz([1]);"))
    with patch.object(fund_api, "fund_data_service", service):
        async with client() as c:
            resp = await c.get("/api/fund/000001/estimate")
    assert resp.status_code == 404
