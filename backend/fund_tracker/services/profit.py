"""Holding profit engine.

Recomputes the derived fields of a holding from the latest estimate:

    current       = est_nav if est_nav > 0 else last_nav
    market_value  = shares * current
    profit        = market_value - amount - accumulated_service_fee
    today_profit  = shares * (current - last_nav) - daily_service_fee

The service fee terms only apply to C-class holdings with a service fee rate.
"""

from datetime import date, datetime
from typing import Any

from fund_tracker.services.fees import calculate_daily_service_fee
from fund_tracker.services.trading_time import market_today


class ProfitCalculator:
    """Calculates market value and profit of holdings against live estimates."""

    def holding_days(self, buy_date: str | None, today: date | None = None) -> int:
        """Calendar days held, counting the buy date itself as day 1."""
        if not buy_date:
            return 0
        today = today or market_today()
        bought = datetime.strptime(buy_date[:10], "%Y-%m-%d").date()
        return max((today - bought).days + 1, 0)

    def calculate_holding(
        self,
        holding: dict[str, Any],
        estimate: dict[str, Any] | None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """Return ``holding`` merged with its derived profit fields.

        Args:
            holding: {fund_code, fund_name, share_class, amount, buy_net_value,
                shares, buy_date, service_fee_rate}.
            estimate: {fund_name, est_nav, last_nav, est_change_pct} or None.

        Returns:
            A new dict; derived values are None when no usable price exists.
        """
        result = {
            **holding,
            "holding_days": self.holding_days(holding.get("buy_date"), today),
            "current_value": None,
            "market_value": None,
            "profit": None,
            "profit_rate": None,
            "today_change": None,
            "today_profit": None,
            "service_fee_deducted": None,
        }
        if estimate is None:
            return result

        if estimate.get("fund_name"):
            result["fund_name"] = estimate["fund_name"]

        est_nav = estimate.get("est_nav") or 0.0
        last_nav = estimate.get("last_nav") or 0.0
        # Outside trading hours the estimate may be blank; value at the last close
        current = est_nav if est_nav > 0 else last_nav
        if current <= 0:
            return result

        shares = holding.get("shares") or 0.0
        if shares <= 0:
            buy_nav = holding.get("buy_net_value") or 0.0
            shares = holding["amount"] / (buy_nav if buy_nav > 0 else current)

        market_value = shares * current
        cost = holding["amount"]

        is_c_class = holding.get("share_class") == "C" and holding.get("service_fee_rate")
        daily_fee = 0.0
        total_service_fee = 0.0
        if is_c_class:
            daily_fee = calculate_daily_service_fee(
                shares, current, holding["service_fee_rate"]
            )
            if result["holding_days"] > 0:
                total_service_fee = daily_fee * result["holding_days"]

        profit = market_value - cost - total_service_fee
        profit_rate = profit / cost * 100 if cost > 0 else 0.0
        today_profit = shares * (current - last_nav) - daily_fee

        result.update(
            {
                "shares": shares,
                "current_value": current,
                "market_value": round(market_value, 2),
                "profit": round(profit, 2),
                "profit_rate": round(profit_rate, 4),
                "today_change": estimate.get("est_change_pct"),
                "today_profit": round(today_profit, 2),
                "service_fee_deducted": round(total_service_fee, 2) if is_c_class else None,
            }
        )
        return result

    def summarize(self, holdings: list[dict[str, Any]]) -> dict[str, float]:
        """Aggregate computed holdings into portfolio totals."""
        total_value = 0.0
        total_cost = 0.0
        today_profit = 0.0
        for h in holdings:
            if h.get("market_value") is not None:
                total_value += h["market_value"]
            total_cost += h["amount"]
            if h.get("today_profit") is not None:
                today_profit += h["today_profit"]

        total_profit = total_value - total_cost
        total_profit_rate = total_profit / total_cost * 100 if total_cost > 0 else 0.0
        return {
            "total_value": round(total_value, 2),
            "total_cost": round(total_cost, 2),
            "total_profit": round(total_profit, 2),
            "total_profit_rate": round(total_profit_rate, 4),
            "today_profit": round(today_profit, 2),
        }


# Global instance
profit_calculator = ProfitCalculator()
