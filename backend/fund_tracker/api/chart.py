"""Chart data API routes."""

from fastapi import APIRouter, Query
from fastapi.responses import Response

from fund_tracker.config import LIVE_POINT_CACHE_TTL
from fund_tracker.services.chart import build_display_series, build_kline, chart_renderer
from fund_tracker.services.fund_data import fund_data_service
from fund_tracker.services.trading_time import today_str
from fund_tracker.api.schemas import ChartResponse, KLineResponse

router = APIRouter(prefix="/api/fund", tags=["chart"])


async def _chart_series(fund_code: str, days: int, live: bool) -> list[dict]:
    history = await fund_data_service.get_net_value_history(fund_code, days)
    live_value = None
    fallback_value = None
    if live or not history:
        estimate = await fund_data_service.get_estimate(fund_code)
        if estimate:
            live_value = estimate["est_nav"] if live else None
            fallback_value = estimate["last_nav"]
    return build_display_series(
        history,
        live_value=live_value,
        today=today_str(),
        live=live,
        fallback_value=fallback_value,
    )


def _live_point_animation(fund_code: str, value: float) -> list[float]:
    """Tween from the last live point served for this fund to ``value``."""
    key = f"chart_live_{fund_code}"
    previous = fund_data_service.cache.memory.get(key)
    fund_data_service.cache.memory.set(key, value, LIVE_POINT_CACHE_TTL)
    if previous is None or previous == value:
        return []
    return chart_renderer.animate_live_point(previous, value)


@router.get("/{fund_code}/chart", response_model=ChartResponse)
async def get_chart(
    fund_code: str,
    days: int = Query(30, ge=1, le=400),
    live: bool = Query(False, description="Append the live estimate as today's point"),
):
    """NAV line chart data with the canvas layout precomputed."""
    series = await _chart_series(fund_code, days, live)
    layout = chart_renderer.layout(series)
    animation = _live_point_animation(fund_code, series[-1]["value"]) if live else []
    return ChartResponse(
        fund_code=fund_code,
        live=live,
        series=series,
        y_min=layout["y_min"],
        y_max=layout["y_max"],
        layout=layout,
        animation=animation,
    )


@router.get("/{fund_code}/chart.svg")
async def get_chart_svg(
    fund_code: str,
    days: int = Query(30, ge=1, le=400),
    live: bool = Query(False),
):
    series = await _chart_series(fund_code, days, live)
    svg = chart_renderer.render_svg(chart_renderer.layout(series))
    return Response(content=svg, media_type="image/svg+xml")


@router.get("/{fund_code}/kline", response_model=list[KLineResponse])
async def get_kline(fund_code: str, days: int = Query(120, ge=2, le=400)):
    """Simulated daily candles, oldest first."""
    history = await fund_data_service.get_net_value_history(fund_code, days + 1)
    return build_kline(history)
