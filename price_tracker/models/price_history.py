# price_tracker/models/price_history.py

"""Temporal price observations for a tracked product."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from price_tracker.models.product import parse_timestamp


@dataclass(frozen=True)
class PriceHistoryPoint:
    """A single price observation for a product at a point in time."""

    id: str
    product_id: str
    price: float
    recorded_at: datetime

    @classmethod
    def from_record(
        cls, record: dict[str, Any],
    ) -> "PriceHistoryPoint":
        """Build a point from a ``price_history`` row."""
        return cls(
            id=str(record.get("id", "")),
            product_id=str(record["product_id"]),
            price=float(record["price"]),
            recorded_at=parse_timestamp(record["recorded_at"]),
        )


@dataclass(frozen=True)
class ChartPoint:
    """One plotted point: a short date label and its price."""

    date: str
    price: float
    recorded_at: datetime
