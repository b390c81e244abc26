"""Pydantic schemas for API request/response."""

from typing import Literal

from pydantic import BaseModel, Field


class FundEstimateResponse(BaseModel):
    fund_code: str
    fund_name: str
    last_nav: float
    nav_date: str
    est_nav: float
    est_change_pct: float
    est_time: str
    trading: bool


class NetValueRecordResponse(BaseModel):
    date: str
    net_value: float
    total_value: float
    change_rate: float


class PeriodReturnResponse(BaseModel):
    period: str
    label: str
    days: int
    change: float


class SellFeeTier(BaseModel):
    min_days: int
    max_days: int | None = None
    rate: float


class FeeInfoResponse(BaseModel):
    fund_code: str
    share_class: str
    buy_fee_rate: float
    sell_fee_rates: list[SellFeeTier]
    service_fee_rate: float
    management_fee_rate: float
    custodian_fee_rate: float


class SellFeeEstimateResponse(BaseModel):
    fund_code: str
    shares: float
    net_value: float
    holding_days: int
    rate: float
    fee: float
    net_amount: float


class FundSearchResult(BaseModel):
    fund_code: str
    fund_name: str
    fund_type: str


class FundRankItemResponse(BaseModel):
    fund_code: str
    fund_name: str
    nav_date: str
    net_value: float
    day_change: float
    week_change: float
    month_change: float
    year_change: float


class MarketIndexResponse(BaseModel):
    code: str
    name: str
    current: float
    change: float
    change_pct: float


class KLineResponse(BaseModel):
    date: str
    open: float
    high: float
    low: float
    close: float


class ChartResponse(BaseModel):
    fund_code: str
    live: bool
    series: list[dict]
    y_min: float
    y_max: float
    layout: dict
    animation: list[float] = []


class WatchlistAddRequest(BaseModel):
    fund_code: str = Field(min_length=6, max_length=6)


class HoldingUpsertRequest(BaseModel):
    fund_name: str = ""
    share_class: Literal["A", "C"] = "A"
    amount: float = Field(gt=0)
    buy_net_value: float = Field(gt=0)
    buy_date: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    buy_fee_rate: float = Field(default=0.0, ge=0)
    service_fee_rate: float = Field(default=0.0, ge=0)


class HoldingResponse(BaseModel):
    fund_code: str
    fund_name: str
    share_class: str
    amount: float
    buy_net_value: float
    shares: float
    buy_date: str
    buy_fee_rate: float
    service_fee_rate: float
    holding_days: int
    current_value: float | None = None
    market_value: float | None = None
    profit: float | None = None
    profit_rate: float | None = None
    today_change: float | None = None
    today_profit: float | None = None
    service_fee_deducted: float | None = None


class HoldingSummaryResponse(BaseModel):
    total_value: float
    total_cost: float
    total_profit: float
    total_profit_rate: float
    today_profit: float


class HoldingListResponse(BaseModel):
    holdings: list[HoldingResponse]
    summary: HoldingSummaryResponse


class TransactionCreateRequest(BaseModel):
    fund_code: str = Field(min_length=6, max_length=6)
    fund_name: str = ""
    tx_type: Literal["buy", "sell", "dividend", "auto_invest"]
    amount: float = Field(ge=0)
    shares: float = Field(default=0.0, ge=0)
    net_value: float = Field(default=0.0, ge=0)
    fee: float = Field(default=0.0, ge=0)
    tx_date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    remark: str = ""


class TransactionResponse(BaseModel):
    id: int
    fund_code: str
    fund_name: str
    tx_type: str
    amount: float
    shares: float
    net_value: float
    fee: float
    tx_date: str
    remark: str


class AlertCreateRequest(BaseModel):
    fund_code: str = Field(min_length=6, max_length=6)
    alert_type: Literal["up", "down", "time", "value"]
    threshold: float | None = None
    enabled: bool = True


class AlertUpdateRequest(BaseModel):
    enabled: bool


class AlertResponse(BaseModel):
    id: int
    fund_code: str
    alert_type: str
    threshold: float | None = None
    enabled: bool
    created_at: str


class AnnouncementsResponse(BaseModel):
    announcements: list[dict]
    need_update: bool
    force_update: bool
    latest_version: str | None = None
    update_url: str | None = None
