# price_tracker/storage/chart_exporter.py

"""Generate interactive Plotly HTML charts from price history."""

import importlib
import logging
import re
import webbrowser
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Any

from price_tracker.config.settings import Settings
from price_tracker.models.price_history import PriceHistoryPoint

logger = logging.getLogger("price_tracker.chart")


def _get_plotly_go() -> ModuleType:
    """Import plotly.graph_objects lazily."""
    return importlib.import_module("plotly.graph_objects")


def _ensure_charts_dir() -> Path:
    """Create the charts directory if it doesn't exist."""
    charts_dir: Path = Settings.CHARTS_DIR
    charts_dir.mkdir(parents=True, exist_ok=True)
    return charts_dir


def _slugify(name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", name[:30]).strip("_")
    return slug or "product"


def build_history_figure(
    history: list[PriceHistoryPoint], product_name: str,
) -> Any:
    """Build a Plotly line chart for one product's history."""
    go = _get_plotly_go()
    symbol = Settings.CURRENCY_SYMBOL
    dates = [h.recorded_at for h in history]
    prices = [h.price for h in history]

    fig: Any = go.Figure()
    fig.add_trace(go.Scatter(
        x=dates,
        y=prices,
        mode="lines+markers",
        name=product_name[:50],
        line={"shape": "spline", "width": 2},
        marker={"size": 8},
        hovertemplate=(
            "%{x|%b %d, %Y %H:%M}<br>"
            f"Price: {symbol}%{{y:.2f}}"
            "<extra></extra>"
        ),
    ))

    if len(prices) > 1:
        min_idx = prices.index(min(prices))
        max_idx = prices.index(max(prices))
        fig.add_annotation(
            x=dates[min_idx], y=prices[min_idx],
            text=f"Low: {symbol}{prices[min_idx]:.2f}",
            showarrow=True, arrowhead=2,
        )
        fig.add_annotation(
            x=dates[max_idx], y=prices[max_idx],
            text=f"High: {symbol}{prices[max_idx]:.2f}",
            showarrow=True, arrowhead=2,
        )

    fig.update_layout(
        title=f"Price History: {product_name[:60]}",
        xaxis_title="Date",
        yaxis_title="Price",
        yaxis={"tickprefix": symbol},
        xaxis={"tickformat": "%b %d"},
        hovermode="x unified",
        template="plotly_white",
    )
    return fig


def export_price_chart(
    history: list[PriceHistoryPoint],
    product_name: str,
    open_browser: bool = True,
) -> Path | None:
    """Write *history* as a standalone HTML chart and return its path."""
    if not history:
        logger.warning(
            "No price history to chart for %s", product_name[:60],
        )
        return None

    fig = build_history_figure(history, product_name)
    charts_dir = _ensure_charts_dir()
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = charts_dir / f"{_slugify(product_name)}_{stamp}.html"
    fig.write_html(str(filepath))
    logger.info("Chart saved to %s", filepath)

    if open_browser:
        webbrowser.open_new_tab(filepath.as_uri())

    return filepath
