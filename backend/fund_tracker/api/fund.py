"""Fund API routes."""

from fastapi import APIRouter, HTTPException, Query

from fund_tracker.services.fees import calculate_sell_fee, sell_fee_rate
from fund_tracker.services.fund_data import fund_data_service
from fund_tracker.services.market_data import market_data_service
from fund_tracker.services.trading_time import is_trading_time
from fund_tracker.api.schemas import (
    FeeInfoResponse,
    FundEstimateResponse,
    FundSearchResult,
    NetValueRecordResponse,
    PeriodReturnResponse,
    SellFeeEstimateResponse,
)

router = APIRouter(prefix="/api/fund", tags=["fund"])


@router.get("/search", response_model=list[FundSearchResult])
async def search_funds(q: str = ""):
    """Search funds by code prefix or name. Returns up to 20 matches."""
    return market_data_service.search_funds(q)


@router.get("/estimates", response_model=list[FundEstimateResponse])
async def get_estimates(codes: str = Query(..., description="Comma separated fund codes")):
    fund_codes = [c.strip() for c in codes.split(",") if c.strip()]
    estimates = await fund_data_service.get_estimates(fund_codes)
    trading = is_trading_time()
    return [
        FundEstimateResponse(**estimates[code], trading=trading)
        for code in fund_codes
        if code in estimates
    ]


@router.get("/{fund_code}/estimate", response_model=FundEstimateResponse)
async def get_estimate(fund_code: str):
    estimate = await fund_data_service.get_estimate(fund_code)
    if estimate is None:
        raise HTTPException(status_code=404, detail="Estimate not available")
    return FundEstimateResponse(**estimate, trading=is_trading_time())


@router.get("/{fund_code}/nav-history", response_model=list[NetValueRecordResponse])
async def get_nav_history(fund_code: str, size: int = Query(30, ge=1, le=400)):
    """Official NAV records, newest first. Empty when the source is down and nothing is cached."""
    return await fund_data_service.get_net_value_history(fund_code, size)


@router.get("/{fund_code}/period-returns", response_model=list[PeriodReturnResponse])
async def get_period_returns(fund_code: str):
    """1w/1m/3m/6m/1y returns; periods the history does not cover are omitted."""
    return await fund_data_service.get_period_returns(fund_code)


@router.get("/{fund_code}/fee-info", response_model=FeeInfoResponse)
async def get_fee_info(fund_code: str):
    return await fund_data_service.get_fee_info(fund_code)


@router.get("/{fund_code}/sell-fee", response_model=SellFeeEstimateResponse)
async def estimate_sell_fee(
    fund_code: str,
    shares: float = Query(..., gt=0),
    holding_days: int = Query(..., ge=0),
    net_value: float | None = Query(None, gt=0, description="Defaults to the current estimate"),
):
    """Redemption fee for selling ``shares`` after ``holding_days`` days."""
    if net_value is None:
        estimate = await fund_data_service.get_estimate(fund_code)
        if estimate is None:
            raise HTTPException(status_code=404, detail="Estimate not available")
        net_value = estimate["est_nav"] or estimate["last_nav"]
        if net_value <= 0:
            raise HTTPException(status_code=404, detail="Estimate not available")

    rates = (await fund_data_service.get_fee_info(fund_code))["sell_fee_rates"]
    fee = calculate_sell_fee(shares, net_value, holding_days, rates)
    return SellFeeEstimateResponse(
        fund_code=fund_code,
        shares=shares,
        net_value=net_value,
        holding_days=holding_days,
        rate=sell_fee_rate(holding_days, rates),
        fee=fee,
        net_amount=round(shares * net_value - fee, 2),
    )


@router.post("/{fund_code}/refresh")
async def refresh_fund(fund_code: str):
    """Drop cached data for a fund and fetch a fresh estimate."""
    fund_data_service.clear_fund_cache(fund_code)
    estimate = await fund_data_service.get_estimate(fund_code)
    return {"fund_code": fund_code, "refreshed": estimate is not None}
