# price_tracker/ui/price_history_dialog.py

"""Modal line chart of a product's recorded prices."""

import asyncio
import logging

from rich.text import Text
from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Sparkline, Static

from price_tracker.data.client import DataClientError
from price_tracker.models.price_history import PriceHistoryPoint
from price_tracker.services.history_chart import ChartModel, build_chart
from price_tracker.services.tracker_service import TrackerService
from price_tracker.storage.chart_exporter import export_price_chart

logger = logging.getLogger("price_tracker.ui.history")

LOADING = "loading"
EMPTY = "empty"
CHART = "chart"


class PriceHistoryDialog(ModalScreen[None]):
    """Fetches and charts the history of one product.

    Each :meth:`show_product` call starts a new fetch and bumps a
    generation counter; a fetch that finishes after a newer one was
    started is dropped instead of applied.
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("left", "previous_point", "Prev point", show=False),
        Binding("right", "next_point", "Next point", show=False),
        Binding("e", "export", "Export chart"),
    ]

    def __init__(
        self,
        service: TrackerService,
        product_id: str,
        product_name: str,
    ) -> None:
        super().__init__()
        self.service = service
        self.product_id = product_id
        self.product_name = product_name
        self.history: list[PriceHistoryPoint] = []
        self.chart: ChartModel | None = None
        self.state = LOADING
        self.cursor = 0
        self._generation = 0

    def compose(self) -> ComposeResult:
        with Vertical(id="history_dialog", classes="dialog"):
            yield Label(Text(self.product_name), id="history_title", classes="dialog-title")
            yield Static("Price history over time", classes="dialog-description")
            yield Static("Loading history...", id="history_loading", classes="placeholder")
            yield Static(
                "No price history available", id="history_empty", classes="placeholder",
            )
            with Vertical(id="history_chart"):
                with Horizontal(id="chart_body"):
                    yield Static("", id="y_axis")
                    yield Sparkline([], id="sparkline")
                yield Static("", id="x_axis")
                yield Static("", id="tooltip")
            with Horizontal(classes="dialog-buttons"):
                yield Button("Export", id="export_btn")
                yield Button("Close", variant="primary", id="close_btn")

    def on_mount(self) -> None:
        self.show_product(self.product_id, self.product_name)

    def on_unmount(self) -> None:
        self.workers.cancel_group(self, "history")

    # ── Loading ──────────────────────────────────────────

    def show_product(self, product_id: str, product_name: str) -> None:
        """Point the dialog at a product and (re)fetch its history."""
        self.product_id = product_id
        self.product_name = product_name
        self.query_one("#history_title", Label).update(Text(product_name))
        self._generation += 1
        self.history = []
        self.chart = None
        self._set_state(LOADING)
        self._load_history(self._generation, product_id)

    @work(exclusive=True, group="history")
    async def _load_history(self, generation: int, product_id: str) -> None:
        error: DataClientError | None = None
        try:
            history = await asyncio.to_thread(
                self.service.load_history, product_id,
            )
        except DataClientError as exc:
            logger.error(
                "Error loading price history for %s: %s",
                product_id, exc, exc_info=True,
            )
            error = exc
            history = []

        if generation != self._generation:
            logger.debug(
                "Dropping stale history for %s (generation %d < %d)",
                product_id, generation, self._generation,
            )
            return
        if error is not None:
            self.notify(
                f"Could not load price history: {error}",
                title="Error",
                severity="error",
            )
        self._apply_history(history)

    def _apply_history(self, history: list[PriceHistoryPoint]) -> None:
        self.history = history
        self.chart = build_chart(history)
        if self.chart is None:
            self._set_state(EMPTY)
            return

        chart = self.chart
        self.query_one("#sparkline", Sparkline).data = chart.prices
        self.query_one("#y_axis", Static).update("\n".join(chart.y_ticks))
        first, last = chart.x_labels
        x_axis = first if first == last else f"{first}  →  {last}"
        self.query_one("#x_axis", Static).update(x_axis)
        self.cursor = len(chart.points) - 1
        self._update_tooltip()
        self._set_state(CHART)

    def _set_state(self, state: str) -> None:
        self.state = state
        self.query_one("#history_loading").display = state == LOADING
        self.query_one("#history_empty").display = state == EMPTY
        self.query_one("#history_chart").display = state == CHART

    def _update_tooltip(self) -> None:
        if self.chart is None:
            return
        self.query_one("#tooltip", Static).update(
            self.chart.tooltip(self.cursor)
        )

    # ── Actions ──────────────────────────────────────────

    def action_previous_point(self) -> None:
        if self.chart is not None and self.cursor > 0:
            self.cursor -= 1
            self._update_tooltip()

    def action_next_point(self) -> None:
        if self.chart is not None and self.cursor < len(self.chart.points) - 1:
            self.cursor += 1
            self._update_tooltip()

    async def action_export(self) -> None:
        """Write the history as an interactive HTML chart."""
        if not self.history:
            self.notify("No price history to export", severity="warning")
            return
        try:
            path = await asyncio.to_thread(
                export_price_chart, self.history, self.product_name,
            )
        except Exception as exc:
            logger.error("Chart export failed", exc_info=True)
            self.notify(f"Export failed: {exc}", severity="error")
            return
        self.notify(f"Chart saved to {path}")

    def action_close(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#export_btn")
    async def _export_pressed(self) -> None:
        await self.action_export()

    @on(Button.Pressed, "#close_btn")
    def _close_pressed(self) -> None:
        self.action_close()
