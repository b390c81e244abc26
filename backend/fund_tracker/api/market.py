"""Market overview endpoints: indices and fund rankings."""

from fastapi import APIRouter, Query

from fund_tracker.services.fund_data import fund_data_service
from fund_tracker.api.schemas import FundRankItemResponse, MarketIndexResponse

router = APIRouter(prefix="/api/market", tags=["market"])


@router.get("/indices", response_model=list[MarketIndexResponse])
async def get_market_indices():
    return await fund_data_service.get_market_indices()


@router.get("/ranking", response_model=list[FundRankItemResponse])
async def get_fund_ranking(
    sort: str = Query("r", pattern="^(r|zzf|1yzf|3yzf|6yzf|1nzf)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    size: int = Query(20, ge=1, le=100),
):
    """Fund ranking by day / week / month / 3 months / 6 months / year change."""
    return await fund_data_service.get_fund_ranking(sort, order, size)
