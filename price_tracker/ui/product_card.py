# price_tracker/ui/product_card.py

"""Card widget showing one tracked product."""

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from urllib.parse import urlparse

from rich.text import Text
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Label, Static

from price_tracker.config.settings import Settings
from price_tracker.models.product import Product

logger = logging.getLogger("price_tracker.ui.card")

ImageLoaderFn = Callable[[str], bool]

HEART_FILLED = "♥"
HEART_EMPTY = "♡"


def format_price(value: float) -> str:
    return f"{Settings.CURRENCY_SYMBOL}{value:,.2f}"


def format_price_change(change: float) -> str:
    """``▼ 2.50%`` for drops, ``▲ 2.50%`` for rises."""
    arrow = "▼" if change < 0 else "▲"
    return f"{arrow} {abs(change):.2f}%"


class ProductCard(Vertical):
    """Displays a product and reports wishlist / history intents upward.

    The card never touches the data platform.  Loading the image is
    delegated to *image_loader*; a failed load switches the card to the
    "No image" placeholder for the rest of its life.
    """

    class WishlistToggled(Message):
        """The heart button was pressed."""

        def __init__(self, product_id: str) -> None:
            self.product_id = product_id
            super().__init__()

    class HistoryRequested(Message):
        """The "View History" button was pressed."""

        def __init__(self, product_id: str) -> None:
            self.product_id = product_id
            super().__init__()

    def __init__(
        self,
        product: Product,
        price_change: float = 0.0,
        image_loader: ImageLoaderFn | None = None,
    ) -> None:
        super().__init__(classes="product-card")
        self.product = product
        self.price_change = price_change
        self._image_loader = image_loader
        self.image_error = False
        self.image_attempts = 0

    @property
    def shows_image(self) -> bool:
        return bool(self.product.image_url) and not self.image_error

    def _image_text(self) -> str:
        if not self.shows_image:
            return "No image"
        path = urlparse(self.product.image_url or "").path
        filename = path.rsplit("/", 1)[-1] or "image"
        return f"🖼  {filename}"

    def compose(self) -> ComposeResult:
        p = self.product
        with Horizontal(classes="card-top"):
            yield Static(Text(self._image_text()), id="image", classes="card-image")
            yield Button(
                HEART_FILLED if p.is_in_wishlist else HEART_EMPTY,
                id="wishlist_btn",
                classes="heart in-wishlist" if p.is_in_wishlist else "heart",
            )
        if p.category:
            yield Label(Text(p.category), id="category", classes="badge")
        yield Label(Text(p.name), id="name", classes="card-name")
        yield Label(format_price(p.current_price), id="price", classes="card-price")
        if self.price_change != 0:
            yield Label(
                format_price_change(self.price_change),
                id="price_change",
                classes="drop" if self.price_change < 0 else "rise",
            )
        with Horizontal(classes="card-actions"):
            yield Button("View History", id="history_btn")
            yield Button("Open ↗", id="open_btn")

    def on_mount(self) -> None:
        if self.shows_image and self._image_loader is not None:
            self._load_image()

    @work(exclusive=True, group="image")
    async def _load_image(self) -> None:
        if self.image_error or self._image_loader is None:
            return
        url = self.product.image_url or ""
        self.image_attempts += 1
        ok = await asyncio.to_thread(self._image_loader, url)
        if not ok:
            self.mark_image_failed()

    def mark_image_failed(self) -> None:
        """Fall back to the placeholder; there is no way back."""
        if self.image_error:
            return
        self.image_error = True
        logger.debug(
            "Image failed for product %s, showing placeholder",
            self.product.id,
        )
        self.query_one("#image", Static).update(Text(self._image_text()))

    @on(Button.Pressed, "#wishlist_btn")
    def _wishlist_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.post_message(self.WishlistToggled(self.product.id))

    @on(Button.Pressed, "#history_btn")
    def _history_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.post_message(self.HistoryRequested(self.product.id))

    @on(Button.Pressed, "#open_btn")
    def _open_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        webbrowser.open_new_tab(self.product.url)
