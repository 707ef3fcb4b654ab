# price_tracker/services/tracker_service.py

"""Product tracking operations behind the dashboard and its dialogs.

Every method here blocks on the data client; screens run them through
``asyncio.to_thread`` so the Textual event loop stays responsive.
"""

import logging
from dataclasses import dataclass

from price_tracker.data.client import (
    PRICE_HISTORY,
    PRODUCTS,
    AuthRequiredError,
    DataClient,
    DataClientError,
    Order,
)
from price_tracker.filters.product_validator import ProductValidator
from price_tracker.models.price_history import PriceHistoryPoint
from price_tracker.models.product import Product, ProductDraft

logger = logging.getLogger("price_tracker.service")


@dataclass
class ToggleResult:
    """Outcome of a wishlist toggle request."""

    product: Product
    now_in_wishlist: bool

    @property
    def message(self) -> str:
        if self.now_in_wishlist:
            return "Added to wishlist"
        return "Removed from wishlist"


def wishlist_subset(products: list[Product]) -> list[Product]:
    """Products flagged for the wishlist, in list order."""
    return [p for p in products if p.is_in_wishlist]


def find_product(
    products: list[Product], product_id: str,
) -> Product | None:
    """Look a product up by id in an in-memory list."""
    for product in products:
        if product.id == product_id:
            return product
    return None


class TrackerService:
    """Coordinates product reads and writes against a data client."""

    def __init__(self, client: DataClient) -> None:
        self.client = client

    def load_products(self) -> list[Product] | None:
        """Fetch the signed-in user's products, newest first.

        Returns ``None`` when nobody is signed in.
        """
        user = self.client.get_current_user()
        if user is None:
            logger.info("No signed-in user, skipping product load")
            return None
        rows = self.client.query(
            PRODUCTS,
            filters={"user_id": user.id},
            order=Order("created_at", ascending=False),
        )
        try:
            products = [Product.from_record(r) for r in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise DataClientError(f"Malformed product row: {exc}") from exc
        logger.debug("Loaded %d products for %s", len(products), user.id)
        return products

    def toggle_wishlist(
        self, products: list[Product], product_id: str,
    ) -> ToggleResult | None:
        """Flip the wishlist flag of *product_id* on the platform.

        *products* is only read; the new flag arrives through the next
        reload.  Returns ``None`` when the id is not in *products*.
        """
        product = find_product(products, product_id)
        if product is None:
            logger.debug("Toggle for unknown product %s ignored", product_id)
            return None
        new_flag = not product.is_in_wishlist
        self.client.update(
            PRODUCTS, product.id, {"is_in_wishlist": new_flag},
        )
        logger.info(
            "Wishlist %s for product %s",
            "added" if new_flag else "removed",
            product.id,
        )
        return ToggleResult(product=product, now_in_wishlist=new_flag)

    def add_product(self, draft: ProductDraft) -> Product:
        """Validate *draft* and insert it for the signed-in user.

        Raises :class:`AuthRequiredError` when nobody is signed in and
        :class:`ProductValidationError` for an unusable draft; neither
        issues a request.
        """
        user = self.client.get_current_user()
        if user is None:
            raise AuthRequiredError("You must be logged in to add products")
        record = ProductValidator.to_record(draft, user.id)
        stored = self.client.insert(PRODUCTS, record)
        product = Product.from_record(stored)
        logger.info("Added product %s (%s)", product.id, product.name)
        return product

    def load_history(self, product_id: str) -> list[PriceHistoryPoint]:
        """All recorded prices of a product, oldest first."""
        rows = self.client.query(
            PRICE_HISTORY,
            filters={"product_id": product_id},
            order=Order("recorded_at", ascending=True),
        )
        try:
            return [PriceHistoryPoint.from_record(r) for r in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise DataClientError(f"Malformed price history row: {exc}") from exc

    def sign_out(self) -> None:
        self.client.sign_out()
