"""Upstream fund data client.

Talks to the public eastmoney / tiantian fund endpoints with httpx and to
akshare for the fund name table. Every request goes through the shared
RequestLimiter. Network and parse failures surface as FundDataError; callers
decide how to degrade.
"""

import asyncio
import json
import logging
import re
import time
from datetime import datetime
from typing import Any

import akshare as ak
import httpx
import pandas as pd

from fund_tracker.config import (
    ESTIMATE_TIMEOUT,
    FEE_INFO_TIMEOUT,
    FUND_LIST_CACHE_TTL,
    HISTORY_TIMEOUT,
    MARKET_TZ,
    PERIOD_TIMEOUT,
    RANKING_TIMEOUT,
)
from fund_tracker.exceptions import FundDataError
from fund_tracker.services.fees import default_fee_info, detect_share_class
from fund_tracker.services.limiter import RequestLimiter

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

ESTIMATE_URL = "https://fundgz.1234567.com.cn/js/{code}.js"
NAV_HISTORY_URL = "https://api.fund.eastmoney.com/f10/lsjz"
PINGZHONG_URL = "https://fund.eastmoney.com/pingzhongdata/{code}.js"
RANKING_URL = "https://fund.eastmoney.com/data/rankhandler.aspx"
INDICES_URL = "https://push2.eastmoney.com/api/qt/ulist.np/get"
FEE_INFO_URL = "https://fundgz.1234567.com.cn/FundNew/GetFundMJJZ"

# SSE composite, SZSE component, ChiNext, CSI 300
MARKET_INDEX_SECIDS = "1.000001,0.399001,0.399006,1.000300"

_JSONP_RE = re.compile(r"^[\w$.]*\((.*)\)\s*;?\s*$", re.S)
_NET_WORTH_TREND_RE = re.compile(r"Data_netWorthTrend\s*=\s*(\[.*?\]);", re.S)
_RANK_DATAS_RE = re.compile(r"datas\s*:\s*(\[.*?\])", re.S)

# Fund name table from akshare: (timestamp, DataFrame)
_fund_name_cache: dict[str, Any] = {"data": None, "ts": 0.0}


def _to_float(value: Any) -> float:
    """Parse an upstream number; blanks, dashes and garbage become 0."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _field(parts: list[str], i: int) -> str:
    return parts[i] if i < len(parts) else ""


def strip_jsonp(text: str) -> str:
    """Return the JSON argument of a ``callback({...})`` payload."""
    m = _JSONP_RE.match(text.strip())
    if not m:
        raise ValueError("payload is not a JSONP call")
    return m.group(1)


def parse_estimate(text: str, fund_code: str) -> dict[str, Any]:
    """Parse a ``jsonpgz({...})`` estimate payload for ``fund_code``.

    Responses for another fund are rejected so a late or crossed reply can
    never be attributed to the wrong request.
    """
    try:
        body = strip_jsonp(text)
        payload = json.loads(body) if body.strip() else None
    except ValueError as e:
        raise FundDataError(f"Unparseable estimate payload: {e}", fund_code) from e
    # Funds without intraday valuation answer jsonpgz();
    if not isinstance(payload, dict) or not payload.get("fundcode"):
        raise FundDataError("Estimate not available", fund_code)
    if payload["fundcode"] != fund_code:
        raise FundDataError(
            f"Estimate reply for {payload['fundcode']} does not match request", fund_code
        )
    return {
        "fund_code": payload["fundcode"],
        "fund_name": str(payload.get("name", "")),
        "last_nav": _to_float(payload.get("dwjz")),
        "nav_date": str(payload.get("jzrq", "")),
        "est_nav": _to_float(payload.get("gsz")),
        "est_change_pct": _to_float(payload.get("gszzl")),
        "est_time": str(payload.get("gztime", "")),
    }


def parse_net_value_history(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Convert an lsjz JSON response into records, newest first."""
    body = data.get("Data") if isinstance(data, dict) else None
    rows = body.get("LSJZList") if isinstance(body, dict) else None
    if not isinstance(rows, list):
        return []
    return [
        {
            "date": str(row.get("FSRQ", "")),
            "net_value": _to_float(row.get("DWJZ")),
            "total_value": _to_float(row.get("LJJZ")),
            "change_rate": _to_float(row.get("JZZZL")),
        }
        for row in rows
        if isinstance(row, dict)
    ]


def parse_net_worth_trend(text: str) -> list[dict[str, Any]]:
    """Extract ``Data_netWorthTrend`` from a pingzhongdata script, newest first."""
    m = _NET_WORTH_TREND_RE.search(text)
    if not m:
        return []
    points = json.loads(m.group(1))
    if not isinstance(points, list):
        return []
    records = []
    for point in points:
        if not isinstance(point, dict) or "x" not in point:
            continue
        records.append(
            {
                "date": datetime.fromtimestamp(point["x"] / 1000, MARKET_TZ).strftime(
                    "%Y-%m-%d"
                ),
                "net_value": _to_float(point.get("y")),
                "total_value": _to_float(point.get("y")),
                "change_rate": _to_float(point.get("equityReturn")),
            }
        )
    records.reverse()
    return records


def parse_ranking(text: str) -> list[dict[str, Any]]:
    """Parse rankhandler rows ("code,name,pinyin,date,nav,acc_nav,day,week,month,...")."""
    m = _RANK_DATAS_RE.search(text)
    if not m:
        return []
    rows = json.loads(m.group(1))
    if not isinstance(rows, list):
        return []
    items = []
    for row in rows:
        if not isinstance(row, str):
            continue
        parts = row.split(",")
        items.append(
            {
                "fund_code": _field(parts, 0),
                "fund_name": _field(parts, 1),
                "nav_date": _field(parts, 3),
                "net_value": _to_float(_field(parts, 4)),
                "day_change": _to_float(_field(parts, 6)),
                "week_change": _to_float(_field(parts, 7)),
                "month_change": _to_float(_field(parts, 8)),
                "year_change": _to_float(_field(parts, 11)),
            }
        )
    return items


class MarketDataService:
    """Fetches fund estimates, history, rankings and fee data."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        limiter: RequestLimiter | None = None,
    ):
        self._transport = transport
        self.limiter = limiter or RequestLimiter()

    async def _get(
        self,
        url: str,
        timeout: float,
        params: dict[str, Any] | None = None,
        referer: str | None = None,
    ) -> httpx.Response:
        headers = {"User-Agent": USER_AGENT}
        if referer:
            headers["Referer"] = referer

        async def request() -> httpx.Response:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=timeout, headers=headers
            ) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp

        try:
            return await self.limiter.run(request)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            raise FundDataError(f"HTTP request failed: {url} -> {e!r}") from e

    async def fetch_estimate(self, fund_code: str) -> dict[str, Any]:
        """Get the intraday valuation estimate for one fund."""
        resp = await self._get(
            ESTIMATE_URL.format(code=fund_code),
            ESTIMATE_TIMEOUT,
            params={"rt": int(time.time() * 1000)},
        )
        return parse_estimate(resp.text, fund_code)

    async def fetch_net_value_history(
        self, fund_code: str, page_size: int = 30
    ) -> list[dict[str, Any]]:
        """Get the latest ``page_size`` official NAV records, newest first."""
        resp = await self._get(
            NAV_HISTORY_URL,
            HISTORY_TIMEOUT,
            params={
                "fundCode": fund_code,
                "pageIndex": 1,
                "pageSize": page_size,
                "_": int(time.time() * 1000),
            },
            referer="https://fundf10.eastmoney.com/",
        )
        try:
            return parse_net_value_history(resp.json())
        except ValueError as e:
            raise FundDataError(f"Unparseable NAV history: {e}", fund_code) from e

    async def fetch_net_worth_trend(self, fund_code: str) -> list[dict[str, Any]]:
        """Get the full NAV trend from pingzhongdata, newest first."""
        resp = await self._get(
            PINGZHONG_URL.format(code=fund_code),
            PERIOD_TIMEOUT,
            params={"v": int(time.time() * 1000)},
        )
        try:
            return parse_net_worth_trend(resp.text)
        except (ValueError, TypeError, OverflowError, OSError) as e:
            raise FundDataError(f"Unparseable NAV trend: {e}", fund_code) from e

    async def fetch_fund_ranking(
        self, sort_type: str = "r", order: str = "desc", page_size: int = 20
    ) -> list[dict[str, Any]]:
        """Open-end fund ranking sorted by ``sort_type`` (r, zzf, 1yzf, 6yzf, 1nzf)."""
        resp = await self._get(
            RANKING_URL,
            RANKING_TIMEOUT,
            params={
                "op": "ph", "dt": "kf", "ft": "all", "rs": "", "gs": 0,
                "sc": sort_type, "st": order, "pi": 1, "pn": page_size, "dx": 1,
            },
            referer="https://fund.eastmoney.com/data/fundranking.html",
        )
        try:
            return parse_ranking(resp.text)
        except ValueError as e:
            raise FundDataError(f"Unparseable ranking: {e}") from e

    async def fetch_market_indices(self) -> list[dict[str, Any]]:
        resp = await self._get(
            INDICES_URL,
            RANKING_TIMEOUT,
            params={"fltt": 2, "secids": MARKET_INDEX_SECIDS, "fields": "f2,f3,f4,f12,f14"},
        )
        try:
            data = resp.json()
        except ValueError as e:
            raise FundDataError(f"Unparseable index quotes: {e}") from e
        body = data.get("data") if isinstance(data, dict) else None
        diff = body.get("diff") if isinstance(body, dict) else None
        if not isinstance(diff, list):
            return []
        return [
            {
                "code": str(item.get("f12", "")),
                "name": str(item.get("f14", "")),
                "current": _to_float(item.get("f2")),
                "change": _to_float(item.get("f4")),
                "change_pct": _to_float(item.get("f3")),
            }
            for item in diff
            if isinstance(item, dict)
        ]

    async def fetch_fee_info(self, fund_code: str) -> dict[str, Any]:
        """Get fee rates for a fund, falling back to the default fee table."""
        try:
            resp = await self._get(
                FEE_INFO_URL,
                FEE_INFO_TIMEOUT,
                params={"callback": "feeCallback", "fcode": fund_code},
            )
            data = json.loads(strip_jsonp(resp.text))
        except (FundDataError, ValueError) as e:
            logger.warning(f"Fee info for {fund_code} unavailable, using defaults: {e}")
            return default_fee_info(fund_code)

        d = data.get("Datas") if isinstance(data, dict) else None
        if not isinstance(d, dict) or not d:
            return default_fee_info(fund_code)
        info = default_fee_info(fund_code)
        info.update(
            {
                "share_class": detect_share_class(str(d.get("SHORTNAME") or "")),
                "buy_fee_rate": _to_float(d.get("MAXSG")) or 0.15,
                "service_fee_rate": _to_float(d.get("XSJF")) or 0.4,
                "management_fee_rate": _to_float(d.get("GLFL")) or 0.5,
                "custodian_fee_rate": _to_float(d.get("TGFL")) or 0.1,
            }
        )
        return info

    def get_fund_name_table(self) -> pd.DataFrame:
        """Return the akshare fund name table, refreshed every FUND_LIST_CACHE_TTL."""
        now = time.time()
        if (
            _fund_name_cache["data"] is None
            or now - _fund_name_cache["ts"] > FUND_LIST_CACHE_TTL
        ):
            _fund_name_cache["data"] = ak.fund_name_em()
            _fund_name_cache["ts"] = now
        return _fund_name_cache["data"]

    def search_funds(self, query: str, limit: int = 20) -> list[dict[str, str]]:
        """Search funds by code prefix or name substring."""
        query = query.strip()
        if not query:
            return []
        try:
            df = self.get_fund_name_table()
            mask = df["基金代码"].str.startswith(query) | df["基金简称"].str.contains(
                query, case=False, na=False, regex=False
            )
            matched = df[mask].head(limit)
        except Exception as e:
            logger.error(f"Fund search failed: {e}")
            return []
        return [
            {
                "fund_code": str(row["基金代码"]),
                "fund_name": str(row["基金简称"]),
                "fund_type": str(row["基金类型"]),
            }
            for _, row in matched.iterrows()
        ]


# Global instance
market_data_service = MarketDataService()
