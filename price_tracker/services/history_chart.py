# price_tracker/services/history_chart.py

"""Turn price history into chart-ready points and axis labels."""

from dataclasses import dataclass, field
from datetime import datetime

from price_tracker.config.settings import Settings
from price_tracker.models.price_history import ChartPoint, PriceHistoryPoint


def format_date_label(moment: datetime) -> str:
    """Short x-axis label such as ``"Jan 05"``, in local time."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime(Settings.CHART_DATE_FORMAT)


def format_axis_price(value: float) -> str:
    """Y-axis tick: currency prefix, decimals only when needed."""
    symbol = Settings.CURRENCY_SYMBOL
    if float(value).is_integer():
        return f"{symbol}{value:,.0f}"
    return f"{symbol}{value:,.2f}"


def format_tooltip(point: ChartPoint) -> str:
    """Hover text with the exact price to two decimals."""
    return f"{point.date}  Price: {Settings.CURRENCY_SYMBOL}{point.price:.2f}"


def to_chart_points(history: list[PriceHistoryPoint]) -> list[ChartPoint]:
    """Map history to chart points, keeping ascending time order."""
    ordered = sorted(history, key=lambda h: h.recorded_at)
    return [
        ChartPoint(
            date=format_date_label(h.recorded_at),
            price=float(h.price),
            recorded_at=h.recorded_at,
        )
        for h in ordered
    ]


@dataclass
class ChartModel:
    """Everything a line chart needs to draw one product's history."""

    points: list[ChartPoint]
    y_ticks: list[str] = field(default_factory=lambda: list[str]())

    @property
    def prices(self) -> list[float]:
        return [p.price for p in self.points]

    @property
    def x_labels(self) -> tuple[str, str]:
        """Labels for the left and right ends of the x-axis."""
        return self.points[0].date, self.points[-1].date

    def tooltip(self, index: int) -> str:
        index = max(0, min(index, len(self.points) - 1))
        return format_tooltip(self.points[index])


def build_chart(
    history: list[PriceHistoryPoint], tick_count: int = 3,
) -> ChartModel | None:
    """Build the chart for *history*; ``None`` when there is nothing to plot."""
    points = to_chart_points(history)
    if not points:
        return None
    prices = [p.price for p in points]
    low, high = min(prices), max(prices)
    if tick_count < 2 or low == high:
        ticks = [format_axis_price(high)]
    else:
        step = (high - low) / (tick_count - 1)
        # Highest first, matching top-to-bottom rendering
        ticks = [
            format_axis_price(round(high - i * step, 2))
            for i in range(tick_count)
        ]
    return ChartModel(points=points, y_ticks=ticks)
