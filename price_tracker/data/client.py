# price_tracker/data/client.py

"""Data platform contract: auth, collection CRUD and change events.

Screens never talk to a platform directly; they receive a
:class:`DataClient` instance at construction time.  Two implementations
ship with the project: the SQLite-backed
:class:`~price_tracker.storage.local_backend.LocalDataClient` and the
hosted :class:`~price_tracker.data.rest_client.RestDataClient`.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from price_tracker.models.user import User

logger = logging.getLogger("price_tracker.data")

PRODUCTS = "products"
PRICE_HISTORY = "price_history"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ALL_EVENTS: frozenset[str] = frozenset({INSERT, UPDATE, DELETE})

Record = dict[str, Any]


class DataClientError(Exception):
    """A request the platform refused or could not complete.

    ``str(exc)`` is the platform's own message and is shown to the
    user verbatim.
    """


class AuthRequiredError(DataClientError):
    """An operation needed a signed-in user and there was none."""


class AuthError(DataClientError):
    """Sign-in or sign-up was rejected."""


@dataclass(frozen=True)
class Order:
    """Sort instruction for :meth:`DataClient.query`."""

    column: str
    ascending: bool = True


@dataclass(frozen=True)
class ChangeEvent:
    """A row in a watched collection was inserted, updated or deleted."""

    collection: str
    event_type: str
    record: Record = field(default_factory=lambda: dict[str, Any]())
    old_record: Record = field(default_factory=lambda: dict[str, Any]())


ChangeCallback = Callable[[ChangeEvent], None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by :meth:`DataClient.subscribe`."""

    id: int
    collection: str
    events: frozenset[str]
    callback: ChangeCallback = field(compare=False)


class DataClient(ABC):
    """Authenticated access to the ``products`` and ``price_history`` data."""

    def __init__(self) -> None:
        self._subscriptions: dict[int, Subscription] = {}
        self._sub_lock = threading.Lock()
        self._sub_ids = itertools.count(1)

    # ── Auth ─────────────────────────────────────────────

    @abstractmethod
    def get_current_user(self) -> User | None:
        """Return the signed-in user, or ``None``."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> User:
        """Start a session; raises :class:`AuthError` on bad credentials."""

    @abstractmethod
    def sign_up(self, email: str, password: str) -> User | None:
        """Register an account.

        Returns the signed-in user, or ``None`` when the platform
        requires confirmation before the first session.
        """

    @abstractmethod
    def sign_out(self) -> None:
        """End the current session."""

    # ── Data ─────────────────────────────────────────────

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Record | None = None,
        order: Order | None = None,
    ) -> list[Record]:
        """Return rows whose columns equal every value in *filters*."""

    @abstractmethod
    def insert(self, collection: str, record: Record) -> Record:
        """Insert one row and return it as stored."""

    @abstractmethod
    def update(
        self, collection: str, record_id: str, changes: Record,
    ) -> None:
        """Apply a partial update to the row with id *record_id*."""

    def close(self) -> None:
        """Release connections and stop background work."""
        with self._sub_lock:
            self._subscriptions.clear()

    # ── Realtime ─────────────────────────────────────────

    def subscribe(
        self,
        collection: str,
        callback: ChangeCallback,
        events: frozenset[str] = ALL_EVENTS,
    ) -> Subscription:
        """Call *callback* for every matching change on *collection*.

        Callbacks may run on any thread.
        """
        with self._sub_lock:
            sub = Subscription(
                id=next(self._sub_ids),
                collection=collection,
                events=frozenset(events),
                callback=callback,
            )
            self._subscriptions[sub.id] = sub
        logger.debug(
            "Subscribed #%d to %s %s",
            sub.id, collection, sorted(sub.events),
        )
        return sub

    def unsubscribe(self, handle: Subscription) -> None:
        """Stop delivering events to *handle*; unknown handles are ignored."""
        with self._sub_lock:
            removed = self._subscriptions.pop(handle.id, None)
        if removed is not None:
            logger.debug("Unsubscribed #%d", handle.id)

    def _subscribers(self, collection: str) -> list[Subscription]:
        with self._sub_lock:
            return [
                s for s in self._subscriptions.values()
                if s.collection == collection
            ]

    def _dispatch(self, event: ChangeEvent) -> None:
        """Deliver *event* to every subscriber whose mask matches."""
        for sub in self._subscribers(event.collection):
            if event.event_type not in sub.events:
                continue
            try:
                sub.callback(event)
            except Exception:
                logger.error(
                    "Change callback #%d failed for %s %s",
                    sub.id,
                    event.event_type,
                    event.collection,
                    exc_info=True,
                )
