"""Watchlist and alert rule API routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fund_tracker.models.database import get_db
from fund_tracker.services.fund_data import fund_data_service
from fund_tracker.services.trading_time import is_trading_time
from fund_tracker.services.watchlist import alert_service, watchlist_service
from fund_tracker.api.schemas import (
    AlertCreateRequest,
    AlertResponse,
    AlertUpdateRequest,
    FundEstimateResponse,
    WatchlistAddRequest,
)

router = APIRouter(prefix="/api", tags=["watchlist"])


@router.get("/watchlist")
async def get_watchlist(db: AsyncSession = Depends(get_db)):
    """Watched codes, newest first, with whatever estimates are available."""
    codes = await watchlist_service.list_codes(db)
    estimates = await fund_data_service.get_estimates(codes)
    trading = is_trading_time()
    return {
        "codes": codes,
        "estimates": [
            FundEstimateResponse(**estimates[code], trading=trading)
            for code in codes
            if code in estimates
        ],
    }


@router.post("/watchlist")
async def add_to_watchlist(req: WatchlistAddRequest, db: AsyncSession = Depends(get_db)):
    added = await watchlist_service.add(db, req.fund_code)
    return {"status": "created" if added else "exists", "fund_code": req.fund_code}


@router.delete("/watchlist/{fund_code}")
async def remove_from_watchlist(fund_code: str, db: AsyncSession = Depends(get_db)):
    await watchlist_service.remove(db, fund_code)
    return {"status": "ok"}


@router.get("/alerts", response_model=list[AlertResponse])
async def list_alerts(fund_code: str | None = None, db: AsyncSession = Depends(get_db)):
    rules = await alert_service.list_rules(db, fund_code)
    return [AlertResponse.model_validate(r, from_attributes=True) for r in rules]


@router.post("/alerts", response_model=AlertResponse)
async def add_alert(req: AlertCreateRequest, db: AsyncSession = Depends(get_db)):
    if req.alert_type in ("up", "down", "value") and req.threshold is None:
        raise HTTPException(status_code=400, detail="Threshold required for this alert type")
    rule = await alert_service.add_rule(
        db, req.fund_code, req.alert_type, req.threshold, req.enabled
    )
    return AlertResponse.model_validate(rule, from_attributes=True)


@router.patch("/alerts/{rule_id}", response_model=AlertResponse)
async def update_alert(
    rule_id: int, req: AlertUpdateRequest, db: AsyncSession = Depends(get_db)
):
    rule = await alert_service.set_enabled(db, rule_id, req.enabled)
    if rule is None:
        raise HTTPException(status_code=404, detail="Alert rule not found")
    return AlertResponse.model_validate(rule, from_attributes=True)


@router.delete("/alerts/{rule_id}")
async def delete_alert(rule_id: int, db: AsyncSession = Depends(get_db)):
    await alert_service.delete_rule(db, rule_id)
    return {"status": "ok"}
