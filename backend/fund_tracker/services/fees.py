"""Fund fee calculations.

A-class shares pay a front-end purchase fee; C-class shares accrue a daily
sales service fee instead. All rates are percentages.
"""

from typing import Any

DEFAULT_SELL_FEE_RATES = [
    {"min_days": 0, "max_days": 7, "rate": 1.5},
    {"min_days": 7, "max_days": 30, "rate": 0.75},
    {"min_days": 30, "max_days": 365, "rate": 0.5},
    {"min_days": 365, "max_days": 730, "rate": 0.25},
    {"min_days": 730, "max_days": None, "rate": 0.0},  # open-ended
]


def default_fee_info(fund_code: str) -> dict[str, Any]:
    return {
        "fund_code": fund_code,
        "share_class": "A",
        "buy_fee_rate": 0.15,
        "sell_fee_rates": [dict(r) for r in DEFAULT_SELL_FEE_RATES],
        "service_fee_rate": 0.4,
        "management_fee_rate": 0.5,
        "custodian_fee_rate": 0.1,
    }


def detect_share_class(name: str) -> str:
    """Guess the share class from the fund's short name; defaults to A."""
    name = name.strip().lower()
    if "c类" in name or "(c)" in name or "（c）" in name or name.endswith("c"):
        return "C"
    if "a类" in name or "(a)" in name or "（a）" in name or name.endswith("a"):
        return "A"
    return "A"


def calculate_buy_fee(amount: float, fee_rate: float, deduct: bool = True) -> dict[str, float]:
    """Front-end purchase fee.

    Returns {fee, net_amount}; ``net_amount`` is what actually buys shares,
    reduced by the fee when ``deduct`` is set.
    """
    fee = amount * (fee_rate / 100)
    net_amount = amount - fee if deduct else amount
    return {"fee": round(fee, 2), "net_amount": net_amount}


def calculate_shares(amount: float, net_value: float, fee_rate: float = 0.0) -> float:
    """Shares bought for ``amount`` at ``net_value`` after deducting the purchase fee."""
    if net_value <= 0:
        return 0.0
    return calculate_buy_fee(amount, fee_rate)["net_amount"] / net_value


def sell_fee_rate(holding_days: int, sell_fee_rates: list[dict[str, Any]] | None = None) -> float:
    """Redemption fee rate of the tier matching ``holding_days``."""
    for tier in sell_fee_rates or DEFAULT_SELL_FEE_RATES:
        max_days = tier["max_days"]
        if holding_days >= tier["min_days"] and (max_days is None or holding_days < max_days):
            return tier["rate"]
    return 0.0


def calculate_sell_fee(
    shares: float,
    net_value: float,
    holding_days: int,
    sell_fee_rates: list[dict[str, Any]] | None = None,
) -> float:
    rate = sell_fee_rate(holding_days, sell_fee_rates)
    return round(shares * net_value * (rate / 100), 2)


def calculate_daily_service_fee(shares: float, net_value: float, annual_rate: float) -> float:
    """Daily C-class sales service fee; anything under one cent is charged as 0.01."""
    fee = shares * net_value * (annual_rate / 365 / 100)
    if 0 < fee < 0.01:
        return 0.01
    return round(fee, 2)
