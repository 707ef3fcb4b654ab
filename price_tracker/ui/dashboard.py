# price_tracker/ui/dashboard.py

"""Dashboard: the signed-in user's products, wishlist and dialogs."""

import asyncio
import logging

from rich.markup import escape
from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Grid, Horizontal, Vertical, VerticalScroll
from textual.css.query import NoMatches
from textual.message import Message
from textual.screen import Screen
from textual.timer import Timer
from textual.widget import MountError
from textual.widgets import (
    Button,
    Footer,
    Header,
    Static,
    TabbedContent,
    TabPane,
)

from price_tracker.config.settings import Settings
from price_tracker.data.client import (
    PRODUCTS,
    ChangeEvent,
    DataClient,
    DataClientError,
    Subscription,
)
from price_tracker.models.product import Product
from price_tracker.services.tracker_service import (
    TrackerService,
    find_product,
    wishlist_subset,
)
from price_tracker.ui.add_product_dialog import AddProductDialog
from price_tracker.ui.price_history_dialog import PriceHistoryDialog
from price_tracker.ui.product_card import ImageLoaderFn, ProductCard

logger = logging.getLogger("price_tracker.ui.dashboard")

_EMPTY_TEXT = {
    "all": (
        "No products tracked yet\n"
        "Start tracking products to monitor their prices"
    ),
    "wishlist": (
        "Your wishlist is empty\n"
        "Add products to your wishlist to get price drop notifications"
    ),
}
_LOADING_TEXT = {
    "all": "Loading products...",
    "wishlist": "Loading wishlist...",
}


class DashboardScreen(Screen[None]):
    """Owns the product list and keeps it in sync with the platform.

    The list is only ever replaced by a reload.  Realtime change events
    are coalesced into a single reload after ``RELOAD_DEBOUNCE`` seconds;
    wishlist toggles and new products show up through that reload.
    """

    BINDINGS = [
        Binding("a", "add_product", "Add product"),
        Binding("r", "reload", "Reload"),
        Binding("1", "show_tab('all_tab')", "All"),
        Binding("2", "show_tab('wishlist_tab')", "Wishlist"),
        Binding("o", "sign_out", "Sign out"),
    ]

    class SignedOut(Message):
        """The user ended the session from the dashboard."""

    def __init__(
        self,
        client: DataClient,
        image_loader: ImageLoaderFn | None = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.service = TrackerService(client)
        self.image_loader = image_loader
        self.products: list[Product] = []
        self.loading = True
        self.history_product: tuple[str, str] | None = None
        self._subscription: Subscription | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._reload_timer: Timer | None = None

    @property
    def wishlist(self) -> list[Product]:
        return wishlist_subset(self.products)

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="hero"):
            yield Static(Settings.APP_TITLE, id="hero_title")
            yield Static(
                "Track product prices intelligently, get notified on "
                "drops, and never miss a deal",
                id="hero_tagline",
            )
            with Horizontal(id="hero_actions"):
                yield Button(
                    "+ Track New Product", variant="primary", id="add_btn",
                )
                yield Button("Sign Out", id="sign_out_btn")
        with TabbedContent(initial="all_tab", id="tabs"):
            for key, title in (("all", "All Products"), ("wishlist", "Wishlist")):
                with TabPane(f"{title} (0)", id=f"{key}_tab"):
                    with VerticalScroll():
                        yield Static(
                            _LOADING_TEXT[key],
                            id=f"{key}_status",
                            classes="list-status",
                        )
                        yield Grid(id=f"{key}_grid", classes="card-grid")
        yield Footer()

    def on_mount(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._subscription = self.client.subscribe(
            PRODUCTS, self._on_products_changed,
        )
        self.load_products()

    def on_unmount(self) -> None:
        self.workers.cancel_group(self, "products")
        if self._subscription is not None:
            self.client.unsubscribe(self._subscription)
            self._subscription = None
        if self._reload_timer is not None:
            self._reload_timer.stop()
            self._reload_timer = None

    # ── Realtime ─────────────────────────────────────────

    def _on_products_changed(self, event: ChangeEvent) -> None:
        """Runs on whichever thread the client delivers events on."""
        logger.debug("Realtime %s on %s", event.event_type, event.collection)
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.schedule_reload)

    def schedule_reload(self) -> None:
        """Reload once the current burst of changes has settled."""
        if not self.is_attached:
            return
        if self._reload_timer is not None:
            self._reload_timer.stop()
        self._reload_timer = self.set_timer(
            Settings.RELOAD_DEBOUNCE, self._debounced_reload,
        )

    def _debounced_reload(self) -> None:
        self._reload_timer = None
        self.load_products()

    # ── Loading / rendering ──────────────────────────────

    @work(exclusive=True, group="products")
    async def load_products(self) -> None:
        """Replace the product list with a fresh read."""
        try:
            products = await asyncio.to_thread(self.service.load_products)
        except DataClientError as exc:
            logger.error("Failed to load products: %s", exc, exc_info=True)
            self.notify(escape(str(exc)), title="Error", severity="error")
            products = None

        self.loading = False
        if products is not None:
            self.products = products
        try:
            await self.render_products()
        except (NoMatches, MountError):
            # Screen was removed (sign out, quit) while the read was running
            logger.debug("Dashboard closed during render")

    async def render_products(self) -> None:
        wishlist = self.wishlist
        tabs = self.query_one("#tabs", TabbedContent)
        tabs.get_tab("all_tab").label = f"All Products ({len(self.products)})"
        tabs.get_tab("wishlist_tab").label = f"Wishlist ({len(wishlist)})"
        await self._fill_list("all", self.products)
        await self._fill_list("wishlist", wishlist)

    async def _fill_list(self, key: str, products: list[Product]) -> None:
        status = self.query_one(f"#{key}_status", Static)
        grid = self.query_one(f"#{key}_grid", Grid)
        await grid.remove_children()

        if self.loading:
            status.update(_LOADING_TEXT[key])
            status.display = True
            return
        if not products:
            status.update(_EMPTY_TEXT[key])
            status.display = True
            return

        status.display = False
        await grid.mount_all(
            ProductCard(p, image_loader=self.image_loader) for p in products
        )

    def displayed_ids(self, key: str) -> list[str]:
        """Product ids currently rendered in the ``all``/``wishlist`` list."""
        grid = self.query_one(f"#{key}_grid", Grid)
        return [card.product.id for card in grid.query(ProductCard)]

    # ── Intents ──────────────────────────────────────────

    async def toggle_wishlist(self, product_id: str) -> None:
        """Ask the platform to flip the flag; the list waits for the reload."""
        try:
            result = await asyncio.to_thread(
                self.service.toggle_wishlist, list(self.products), product_id,
            )
        except DataClientError as exc:
            logger.error(
                "Wishlist toggle failed for %s: %s",
                product_id, exc, exc_info=True,
            )
            self.notify(escape(str(exc)), title="Error", severity="error")
            return
        if result is not None:
            self.notify(escape(result.product.name), title=result.message)

    def view_history(self, product_id: str) -> None:
        product = find_product(self.products, product_id)
        if product is None:
            return
        self.history_product = (product.id, product.name)
        self.app.push_screen(
            PriceHistoryDialog(self.service, product.id, product.name),
            self._on_history_closed,
        )

    def _on_history_closed(self, _result: None) -> None:
        self.history_product = None

    def _on_product_added(self, added: bool | None) -> None:
        if added:
            self.schedule_reload()

    @on(ProductCard.WishlistToggled)
    async def _card_wishlist_toggled(
        self, message: ProductCard.WishlistToggled,
    ) -> None:
        await self.toggle_wishlist(message.product_id)

    @on(ProductCard.HistoryRequested)
    def _card_history_requested(
        self, message: ProductCard.HistoryRequested,
    ) -> None:
        self.view_history(message.product_id)

    @on(Button.Pressed, "#add_btn")
    def _add_pressed(self) -> None:
        self.action_add_product()

    @on(Button.Pressed, "#sign_out_btn")
    async def _sign_out_pressed(self) -> None:
        await self.action_sign_out()

    # ── Actions ──────────────────────────────────────────

    def action_add_product(self) -> None:
        self.app.push_screen(
            AddProductDialog(self.service), self._on_product_added,
        )

    def action_reload(self) -> None:
        self.load_products()

    def action_show_tab(self, tab_id: str) -> None:
        self.query_one("#tabs", TabbedContent).active = tab_id

    async def action_sign_out(self) -> None:
        try:
            await asyncio.to_thread(self.service.sign_out)
        except DataClientError as exc:
            logger.error("Sign out failed: %s", exc, exc_info=True)
            self.notify(escape(str(exc)), title="Error", severity="error")
            return
        self.post_message(self.SignedOut())
