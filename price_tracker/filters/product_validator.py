# price_tracker/filters/product_validator.py

"""Product draft validation, run before anything reaches the platform."""

import logging
import math
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from price_tracker.data.client import Record
from price_tracker.models.product import ProductDraft

logger = logging.getLogger("price_tracker.filters")


class ProductValidationError(ValueError):
    """The draft cannot be submitted as entered."""


class ProductValidator:
    """Validate add-product drafts and turn them into insert records."""

    @staticmethod
    def parse_price(text: str) -> float:
        """Parse a price field into a finite, non-negative number.

        Accepts plain decimals with an optional leading currency
        symbol and thousands separators (``"$1,299.99"``).
        """
        cleaned = text.strip().lstrip("$").replace(",", "").strip()
        if not cleaned:
            raise ProductValidationError("Price is required")
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            msg = f"'{text.strip()}' is not a valid price"
            raise ProductValidationError(msg) from None
        # Huge exponents such as 1e400 are finite decimals but overflow to inf
        price = float(value) if value.is_finite() else math.inf
        if not math.isfinite(price):
            msg = f"'{text.strip()}' is not a valid price"
            raise ProductValidationError(msg)
        if price < 0:
            raise ProductValidationError("Price cannot be negative")
        return price

    @staticmethod
    def _check_url(url: str, field_label: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            msg = f"{field_label} must be an http(s) URL"
            raise ProductValidationError(msg)

    @classmethod
    def to_record(cls, draft: ProductDraft, user_id: str) -> Record:
        """Return the ``products`` row for *draft*, owned by *user_id*.

        Blank optional fields are stored as ``None``, not ``""``.
        """
        name = draft.name.strip()
        url = draft.url.strip()
        if not name:
            raise ProductValidationError("Product name is required")
        if not url:
            raise ProductValidationError("Product URL is required")
        cls._check_url(url, "Product URL")

        price = cls.parse_price(draft.current_price)

        image_url = draft.image_url.strip() or None
        if image_url is not None:
            cls._check_url(image_url, "Image URL")

        record: Record = {
            "user_id": user_id,
            "name": name,
            "url": url,
            "current_price": price,
            "image_url": image_url,
            "category": draft.category.strip() or None,
        }
        logger.debug("Validated draft for '%s' at %.2f", name, price)
        return record
