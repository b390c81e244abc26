"""Chart data preparation and canvas layout.

Turns NAV history plus an optional live estimate into a display series, then
lays it out on a fixed-size canvas (line path, filled area, axis labels) and
renders it as SVG.
"""

from typing import Any
from xml.sax.saxutils import escape

from fund_tracker.services.trading_time import today_str

Y_PADDING_RATIO = 0.10
FLAT_PADDING_RATIO = 0.01
Y_TICKS = 5

# A-share colour convention: red for gains, green for losses
UP_COLOR = "#f5222d"
DOWN_COLOR = "#52c41a"


def build_display_series(
    history: list[dict[str, Any]],
    live_value: float | None = None,
    today: str | None = None,
    live: bool = False,
    fallback_value: float | None = None,
) -> list[dict[str, Any]]:
    """Merge NAV closes with the live estimate into an ascending [{date, value}] series.

    Only the live selection gets the estimate point: it replaces today's close
    if present, otherwise it is appended. Never returns an empty list.
    """
    today = today or today_str()
    series = [
        {"date": r["date"], "value": r["net_value"]}
        for r in sorted(history, key=lambda r: r["date"])
        if r.get("net_value", 0) > 0
    ]

    if live and live_value and live_value > 0:
        if series and series[-1]["date"] == today:
            series[-1] = {"date": today, "value": live_value}
        else:
            series.append({"date": today, "value": live_value})

    if not series:
        value = live_value if live_value and live_value > 0 else (fallback_value or 0.0)
        series = [{"date": today, "value": value}]
    return series


def y_axis_range(values: list[float]) -> tuple[float, float]:
    """Pad the value range by 10% of (max - min) on each side."""
    lo, hi = min(values), max(values)
    pad = (hi - lo) * Y_PADDING_RATIO
    if pad == 0:
        # Flat series: keep a visible band around the line
        pad = abs(hi) * FLAT_PADDING_RATIO or 1.0
    return lo - pad, hi + pad


def build_kline(history: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Simulate daily OHLC candles from NAV closes.

    Funds only publish one price a day, so the previous close is used as the
    open and the wick extends 30% of the body beyond it.
    """
    ordered = sorted(history, key=lambda r: r["date"])
    candles = []
    for prev, curr in zip(ordered, ordered[1:]):
        open_ = prev["net_value"]
        close = curr["net_value"]
        wick = abs(close - open_) * 0.3
        candles.append(
            {
                "date": curr["date"],
                "open": round(open_, 4),
                "high": round(max(open_, close) + wick, 4),
                "low": round(max(0.0001, min(open_, close) - wick), 4),
                "close": round(close, 4),
            }
        )
    return candles


class ChartRenderer:
    """Lays a series out on a width x height canvas."""

    def __init__(
        self,
        width: int = 600,
        height: int = 300,
        margin_left: int = 56,
        margin_right: int = 16,
        margin_top: int = 16,
        margin_bottom: int = 28,
    ):
        self.width = width
        self.height = height
        self.margin_left = margin_left
        self.margin_right = margin_right
        self.margin_top = margin_top
        self.margin_bottom = margin_bottom

    @property
    def plot_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def plot_height(self) -> float:
        return self.height - self.margin_top - self.margin_bottom

    def _x(self, index: int, count: int) -> float:
        if count == 1:
            return self.margin_left + self.plot_width / 2
        return self.margin_left + self.plot_width * index / (count - 1)

    def _y(self, value: float, y_min: float, y_max: float) -> float:
        return self.margin_top + self.plot_height * (y_max - value) / (y_max - y_min)

    def layout(self, series: list[dict[str, Any]]) -> dict[str, Any]:
        """Compute canvas coordinates, paths and axis labels for ``series``."""
        values = [p["value"] for p in series]
        y_min, y_max = y_axis_range(values)
        count = len(series)

        points = [
            {
                "date": p["date"],
                "value": p["value"],
                "x": round(self._x(i, count), 2),
                "y": round(self._y(p["value"], y_min, y_max), 2),
            }
            for i, p in enumerate(series)
        ]

        line_path = " ".join(
            f"{'M' if i == 0 else 'L'}{pt['x']},{pt['y']}" for i, pt in enumerate(points)
        )
        baseline = round(self.margin_top + self.plot_height, 2)
        area_path = (
            f"{line_path} L{points[-1]['x']},{baseline} L{points[0]['x']},{baseline} Z"
        )

        y_ticks = []
        for i in range(Y_TICKS):
            value = y_max - (y_max - y_min) * i / (Y_TICKS - 1)
            y_ticks.append(
                {
                    "value": round(value, 4),
                    "label": f"{value:.4f}",
                    "y": round(self._y(value, y_min, y_max), 2),
                }
            )

        label_indexes = sorted({0, (count - 1) // 2, count - 1})
        x_labels = [{"label": points[i]["date"], "x": points[i]["x"]} for i in label_indexes]

        return {
            "width": self.width,
            "height": self.height,
            "y_min": round(y_min, 4),
            "y_max": round(y_max, 4),
            "points": points,
            "line_path": line_path,
            "area_path": area_path,
            "y_ticks": y_ticks,
            "x_labels": x_labels,
            "rising": values[-1] >= values[0],
        }

    def animate_live_point(
        self, old_value: float, new_value: float, frames: int = 10
    ) -> list[float]:
        """Ease-out cubic steps for moving the trailing point from old to new."""
        if frames <= 0:
            return [new_value]
        steps = []
        for i in range(1, frames + 1):
            t = i / frames
            eased = 1 - (1 - t) ** 3
            steps.append(round(old_value + (new_value - old_value) * eased, 6))
        return steps

    def render_svg(self, layout: dict[str, Any]) -> str:
        color = UP_COLOR if layout["rising"] else DOWN_COLOR
        last = layout["points"][-1]
        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{layout["width"]}" '
            f'height="{layout["height"]}" viewBox="0 0 {layout["width"]} {layout["height"]}">',
            f'<path d="{layout["area_path"]}" fill="{color}" fill-opacity="0.12" stroke="none"/>',
            f'<path d="{layout["line_path"]}" fill="none" stroke="{color}" stroke-width="1.5"/>',
        ]
        for tick in layout["y_ticks"]:
            parts.append(
                f'<line x1="{self.margin_left}" y1="{tick["y"]}" '
                f'x2="{self.width - self.margin_right}" y2="{tick["y"]}" '
                'stroke="#eeeeee" stroke-width="1"/>'
            )
            parts.append(
                f'<text x="{self.margin_left - 4}" y="{tick["y"]}" font-size="10" '
                f'text-anchor="end" dominant-baseline="middle">{escape(tick["label"])}</text>'
            )
        for label in layout["x_labels"]:
            parts.append(
                f'<text x="{label["x"]}" y="{self.height - 8}" font-size="10" '
                f'text-anchor="middle">{escape(label["label"])}</text>'
            )
        parts.append(f'<circle cx="{last["x"]}" cy="{last["y"]}" r="3" fill="{color}"/>')
        parts.append("</svg>")
        return "".join(parts)


chart_renderer = ChartRenderer()
