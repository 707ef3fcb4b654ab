# price_tracker/models/product.py

"""Product models shared by the data client, service and UI layers."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> datetime:
    """Parse a platform timestamp (ISO string or datetime)."""
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    # Python < 3.11 rejects a trailing "Z"
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # and fractions that are not exactly 3 or 6 digits
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text)
    return datetime.fromisoformat(text)


@dataclass
class Product:
    """A tracked product owned by one user."""

    id: str
    user_id: str
    name: str
    url: str
    current_price: float
    image_url: str | None = None
    category: str | None = None
    is_in_wishlist: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Product":
        """Build a Product from a ``products`` row.

        Prices may arrive as strings (numeric columns over REST) and
        optional fields as empty strings; both are normalised here.
        """
        created = record.get("created_at")
        return cls(
            id=str(record["id"]),
            user_id=str(record.get("user_id", "")),
            name=str(record.get("name", "")),
            url=str(record.get("url", "")),
            current_price=float(record.get("current_price") or 0),
            image_url=record.get("image_url") or None,
            category=record.get("category") or None,
            is_in_wishlist=bool(record.get("is_in_wishlist", False)),
            created_at=(
                parse_timestamp(created) if created else datetime.now()
            ),
        )


@dataclass
class ProductDraft:
    """Unsaved form state of the add-product dialog."""

    name: str = ""
    url: str = ""
    current_price: str = ""
    image_url: str = ""
    category: str = ""

    @classmethod
    def empty(cls) -> "ProductDraft":
        """Return a blank draft."""
        return cls()
