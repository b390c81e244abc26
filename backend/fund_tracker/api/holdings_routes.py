"""Holding API routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fund_tracker.models.database import get_db
from fund_tracker.models.holding import Holding
from fund_tracker.services.fund_data import fund_data_service
from fund_tracker.services.holdings import holding_service
from fund_tracker.services.profit import profit_calculator
from fund_tracker.api.schemas import (
    HoldingListResponse,
    HoldingResponse,
    HoldingSummaryResponse,
    HoldingUpsertRequest,
)

router = APIRouter(prefix="/api/holdings", tags=["holdings"])


def _holding_dict(h: Holding) -> dict:
    return {
        "fund_code": h.fund_code,
        "fund_name": h.fund_name,
        "share_class": h.share_class,
        "amount": h.amount,
        "buy_net_value": h.buy_net_value,
        "shares": h.shares,
        "buy_date": h.buy_date,
        "buy_fee_rate": h.buy_fee_rate,
        "service_fee_rate": h.service_fee_rate,
    }


async def _computed_holdings(db: AsyncSession) -> list[dict]:
    """Recompute derived fields of every holding from the latest estimates."""
    holdings = await holding_service.list_holdings(db)
    estimates = await fund_data_service.get_estimates([h.fund_code for h in holdings])
    return [
        profit_calculator.calculate_holding(_holding_dict(h), estimates.get(h.fund_code))
        for h in holdings
    ]


@router.get("", response_model=HoldingListResponse)
async def list_holdings(db: AsyncSession = Depends(get_db)):
    computed = await _computed_holdings(db)
    return HoldingListResponse(
        holdings=[HoldingResponse(**h) for h in computed],
        summary=HoldingSummaryResponse(**profit_calculator.summarize(computed)),
    )


@router.get("/summary", response_model=HoldingSummaryResponse)
async def get_summary(db: AsyncSession = Depends(get_db)):
    computed = await _computed_holdings(db)
    return HoldingSummaryResponse(**profit_calculator.summarize(computed))


@router.get("/{fund_code}", response_model=HoldingResponse)
async def get_holding(fund_code: str, db: AsyncSession = Depends(get_db)):
    holding = await holding_service.get_holding(db, fund_code)
    if holding is None:
        raise HTTPException(status_code=404, detail="Holding not found")
    estimate = await fund_data_service.get_estimate(fund_code)
    return HoldingResponse(
        **profit_calculator.calculate_holding(_holding_dict(holding), estimate)
    )


@router.put("/{fund_code}", response_model=HoldingResponse)
async def upsert_holding(
    fund_code: str,
    req: HoldingUpsertRequest,
    db: AsyncSession = Depends(get_db),
):
    if len(fund_code) != 6 or not fund_code.isdigit():
        raise HTTPException(status_code=400, detail="Invalid fund code")
    holding = await holding_service.upsert_holding(
        db,
        fund_code=fund_code,
        amount=req.amount,
        buy_net_value=req.buy_net_value,
        buy_date=req.buy_date,
        fund_name=req.fund_name,
        share_class=req.share_class,
        buy_fee_rate=req.buy_fee_rate,
        service_fee_rate=req.service_fee_rate,
    )
    estimate = await fund_data_service.get_estimate(fund_code)
    return HoldingResponse(
        **profit_calculator.calculate_holding(_holding_dict(holding), estimate)
    )


@router.delete("/{fund_code}")
async def delete_holding(fund_code: str, db: AsyncSession = Depends(get_db)):
    removed = await holding_service.remove_holding(db, fund_code)
    if not removed:
        raise HTTPException(status_code=404, detail="Holding not found")
    return {"status": "ok"}
