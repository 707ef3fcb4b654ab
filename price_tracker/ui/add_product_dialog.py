# price_tracker/ui/add_product_dialog.py

"""Modal form for adding a product to the tracker."""

import asyncio
import logging

from rich.markup import escape
from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from price_tracker.config.settings import Settings
from price_tracker.data.client import DataClientError
from price_tracker.filters.product_validator import ProductValidationError
from price_tracker.models.product import ProductDraft
from price_tracker.services.tracker_service import TrackerService

logger = logging.getLogger("price_tracker.ui.add_product")

# Input id -> ProductDraft attribute
_FIELDS: dict[str, str] = {
    "name": "name",
    "url": "url",
    "price": "current_price",
    "image_url": "image_url",
    "category": "category",
}


class AddProductDialog(ModalScreen[bool]):
    """Collects a product draft and inserts it for the signed-in user.

    Dismisses with ``True`` once the product is stored; a failed submit
    keeps the dialog open with everything the user typed.
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, service: TrackerService) -> None:
        super().__init__()
        self.service = service
        self.draft = ProductDraft.empty()
        self.submitting = False

    def compose(self) -> ComposeResult:
        with Vertical(id="add_dialog", classes="dialog"):
            yield Label("Add Product to Track", classes="dialog-title")
            yield Static(
                "Enter the product details to start tracking its price",
                classes="dialog-description",
            )
            yield Label("Product Name")
            yield Input(placeholder="iPhone 15 Pro Max", id="name")
            yield Label("Product URL")
            yield Input(placeholder="https://example.com/product", id="url")
            yield Label(f"Current Price ({Settings.CURRENCY_SYMBOL})")
            yield Input(placeholder="999.99", id="price")
            yield Label("Image URL (optional)")
            yield Input(
                placeholder="https://example.com/image.jpg", id="image_url",
            )
            yield Label("Category (optional)")
            yield Input(placeholder="Electronics", id="category")
            with Horizontal(classes="dialog-buttons"):
                yield Button("Cancel", id="cancel_btn")
                yield Button("Add Product", variant="primary", id="submit_btn")

    def on_mount(self) -> None:
        self.query_one("#name", Input).focus()

    def _read_draft(self) -> ProductDraft:
        draft = ProductDraft.empty()
        for input_id, attr in _FIELDS.items():
            setattr(draft, attr, self.query_one(f"#{input_id}", Input).value)
        return draft

    def reset_form(self) -> None:
        """Clear every field and the stored draft."""
        for input_id in _FIELDS:
            self.query_one(f"#{input_id}", Input).value = ""
        self.draft = ProductDraft.empty()

    async def submit(self) -> bool:
        """Validate and insert the draft; True when the dialog closed."""
        if self.submitting:
            return False
        self.draft = self._read_draft()
        button = self.query_one("#submit_btn", Button)
        self.submitting = True
        button.disabled = True
        button.label = "Adding..."
        try:
            product = await asyncio.to_thread(
                self.service.add_product, self.draft,
            )
        except (DataClientError, ProductValidationError) as exc:
            logger.error("Add product failed: %s", exc, exc_info=True)
            self.notify(escape(str(exc)), title="Error", severity="error")
            return False
        finally:
            self.submitting = False
            button.disabled = False
            button.label = "Add Product"

        logger.info("Product %s added from dialog", product.id)
        self.notify("Product added to your tracker!", title="Success")
        self.reset_form()
        self.dismiss(True)
        return True

    @on(Button.Pressed, "#submit_btn")
    async def _submit_pressed(self) -> None:
        await self.submit()

    @on(Input.Submitted)
    async def _enter_pressed(self) -> None:
        await self.submit()

    @on(Button.Pressed, "#cancel_btn")
    def _cancel_pressed(self) -> None:
        self.action_cancel()

    def action_cancel(self) -> None:
        self.dismiss(False)
