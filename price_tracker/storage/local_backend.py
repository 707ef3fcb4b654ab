# price_tracker/storage/local_backend.py

"""SQLite-backed data platform with in-process change events.

Plays the role of the hosted backend when the app runs offline: it owns
accounts and sessions, scopes every read and write to the signed-in
user, records a price history point whenever a product's price is set,
and notifies subscribers after each committed write.
"""

import hashlib
import hmac
import logging
import secrets
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from price_tracker.config.settings import Settings
from price_tracker.data.client import (
    INSERT,
    PRICE_HISTORY,
    PRODUCTS,
    UPDATE,
    AuthError,
    AuthRequiredError,
    ChangeEvent,
    DataClient,
    DataClientError,
    Order,
    Record,
)
from price_tracker.models.product import parse_timestamp
from price_tracker.models.user import User

logger = logging.getLogger("price_tracker.local_backend")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS users (
    id            TEXT PRIMARY KEY,
    email         TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    salt          TEXT NOT NULL,
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    id             TEXT    PRIMARY KEY,
    user_id        TEXT    NOT NULL
                   REFERENCES users(id) ON DELETE CASCADE,
    name           TEXT    NOT NULL CHECK (name <> ''),
    url            TEXT    NOT NULL CHECK (url <> ''),
    current_price  REAL    NOT NULL CHECK (current_price >= 0),
    image_url      TEXT,
    category       TEXT,
    is_in_wishlist INTEGER NOT NULL DEFAULT 0,
    created_at     TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS price_history (
    id          TEXT PRIMARY KEY,
    product_id  TEXT NOT NULL
                REFERENCES products(id) ON DELETE CASCADE,
    price       REAL NOT NULL,
    recorded_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_products_user_created
    ON products(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_history_product_date
    ON price_history(product_id, recorded_at);
"""

_COLUMNS: dict[str, tuple[str, ...]] = {
    PRODUCTS: (
        "id", "user_id", "name", "url", "current_price",
        "image_url", "category", "is_in_wishlist", "created_at",
    ),
    PRICE_HISTORY: ("id", "product_id", "price", "recorded_at"),
}

_MIN_PASSWORD_LENGTH = 6
_PBKDF2_ROUNDS = 120_000


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _utc_iso(value: datetime | str) -> str:
    """Timestamp as UTC ISO text; naive values are read as local time."""
    try:
        when = parse_timestamp(value)
    except ValueError as exc:
        raise DataClientError(f"invalid timestamp: {value!r}") from exc
    return when.astimezone(timezone.utc).isoformat()


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"),
        bytes.fromhex(salt), _PBKDF2_ROUNDS,
    )
    return digest.hex()


def _columns_for(collection: str) -> tuple[str, ...]:
    try:
        return _COLUMNS[collection]
    except KeyError:
        msg = f'relation "{collection}" does not exist'
        raise DataClientError(msg) from None


def _check_columns(collection: str, names: list[str]) -> None:
    known = _columns_for(collection)
    for name in names:
        if name not in known:
            msg = (
                f'column {collection}.{name} does not exist'
            )
            raise DataClientError(msg)


def _row_to_record(collection: str, row: sqlite3.Row) -> Record:
    record: Record = dict(row)
    if collection == PRODUCTS:
        record["is_in_wishlist"] = bool(record["is_in_wishlist"])
    return record


class LocalDataClient(DataClient):
    """SQLite store for users, products and price history."""

    def __init__(
        self, db_path: Path | str | None = None,
    ) -> None:
        super().__init__()
        path = Path(db_path) if db_path is not None else Settings.DB_PATH
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        self._lock = threading.RLock()
        self._user: User | None = None
        logger.debug("LocalDataClient opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        super().close()
        with self._lock:
            self._conn.close()

    # ── Auth ─────────────────────────────────────────────

    def get_current_user(self) -> User | None:
        return self._user

    def sign_up(self, email: str, password: str) -> User:
        email = email.strip().lower()
        if not email or "@" not in email:
            raise AuthError("Unable to validate email address: invalid format")
        if len(password) < _MIN_PASSWORD_LENGTH:
            msg = (
                "Password should be at least "
                f"{_MIN_PASSWORD_LENGTH} characters"
            )
            raise AuthError(msg)

        salt = secrets.token_hex(16)
        user = User(id=str(uuid.uuid4()), email=email)
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO users "
                    "(id, email, password_hash, salt, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        user.id, email,
                        _hash_password(password, salt), salt, _now(),
                    ),
                )
                self._conn.commit()
            except sqlite3.IntegrityError:
                self._conn.rollback()
                raise AuthError("User already registered") from None
        logger.info("Registered local user %s", email)
        self._user = user
        return user

    def sign_in(self, email: str, password: str) -> User:
        email = email.strip().lower()
        with self._lock:
            row = self._conn.execute(
                "SELECT id, email, password_hash, salt "
                "FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        if row is None or not hmac.compare_digest(
            row["password_hash"], _hash_password(password, row["salt"]),
        ):
            logger.warning("Failed sign-in for %s", email)
            raise AuthError("Invalid login credentials")
        self._user = User(id=row["id"], email=row["email"])
        logger.info("Signed in %s", email)
        return self._user

    def sign_out(self) -> None:
        if self._user is not None:
            logger.info("Signed out %s", self._user.email)
        self._user = None

    def _require_user(self) -> User:
        if self._user is None:
            raise AuthRequiredError("JWT expired or missing, sign in again")
        return self._user

    # ── Data ─────────────────────────────────────────────

    def query(
        self,
        collection: str,
        filters: Record | None = None,
        order: Order | None = None,
    ) -> list[Record]:
        user = self._require_user()
        filters = dict(filters or {})
        _check_columns(collection, list(filters))
        if order is not None:
            _check_columns(collection, [order.column])

        # Rows are only visible to their owner
        if collection == PRODUCTS:
            sql = "SELECT * FROM products t WHERE t.user_id = ?"
        else:
            sql = (
                "SELECT t.* FROM price_history t "
                "JOIN products p ON p.id = t.product_id "
                "WHERE p.user_id = ?"
            )
        params: list[Any] = [user.id]
        for column, value in filters.items():
            sql += f" AND t.{column} = ?"
            params.append(value)
        if order is not None:
            direction = "ASC" if order.ascending else "DESC"
            sql += f" ORDER BY t.{order.column} {direction}"

        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [_row_to_record(collection, r) for r in rows]

    def insert(self, collection: str, record: Record) -> Record:
        user = self._require_user()
        if collection != PRODUCTS:
            msg = (
                "new row violates row-level security policy "
                f'for table "{collection}"'
            )
            raise DataClientError(msg)
        if record.get("user_id") != user.id:
            msg = (
                "new row violates row-level security policy "
                'for table "products"'
            )
            raise DataClientError(msg)

        row = {
            "id": str(uuid.uuid4()),
            "is_in_wishlist": False,
            "created_at": _now(),
            **record,
        }
        row["created_at"] = _utc_iso(row["created_at"])
        _check_columns(collection, list(row))
        columns = ", ".join(row)
        marks = ", ".join("?" for _ in row)

        with self._lock:
            try:
                self._conn.execute(
                    f"INSERT INTO products ({columns}) VALUES ({marks})",
                    list(row.values()),
                )
                history = self._add_history_point(
                    row["id"], row["current_price"], row["created_at"],
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise DataClientError(str(exc)) from exc
            stored = self._fetch_product(row["id"])

        logger.info("Inserted product %s (%s)", stored["id"], stored["name"])
        self._dispatch(ChangeEvent(PRODUCTS, INSERT, stored))
        self._dispatch(ChangeEvent(PRICE_HISTORY, INSERT, history))
        return stored

    def update(
        self, collection: str, record_id: str, changes: Record,
    ) -> None:
        user = self._require_user()
        if collection != PRODUCTS:
            msg = (
                "new row violates row-level security policy "
                f'for table "{collection}"'
            )
            raise DataClientError(msg)
        changes = {k: v for k, v in changes.items() if k != "id"}
        if "created_at" in changes:
            changes["created_at"] = _utc_iso(changes["created_at"])
        _check_columns(collection, list(changes))
        if not changes:
            return

        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM products WHERE id = ? AND user_id = ?",
                (record_id, user.id),
            ).fetchone()
            if row is None:
                # Matches zero rows: not an error on the platform either
                logger.debug("Update matched no product %s", record_id)
                return
            old = _row_to_record(PRODUCTS, row)
            new, history = self._apply_update(old, changes)

        self._dispatch(ChangeEvent(PRODUCTS, UPDATE, new, old))
        if history is not None:
            self._dispatch(ChangeEvent(PRICE_HISTORY, INSERT, history))

    # ── Price recording ──────────────────────────────────

    def record_price(
        self,
        product_id: str,
        price: float,
        recorded_at: datetime | None = None,
    ) -> Record:
        """Set a product's current price and append a history point.

        This is the service-level path used by price updaters; it does
        not need a user session.  Returns the new history row.
        """
        if not price >= 0:
            raise DataClientError("current_price must be non-negative")
        ts = _utc_iso(recorded_at) if recorded_at is not None else _now()
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM products WHERE id = ?", (product_id,),
            ).fetchone()
            if row is None:
                msg = f"Product {product_id} not found"
                raise DataClientError(msg)
            old = _row_to_record(PRODUCTS, row)
            try:
                self._conn.execute(
                    "UPDATE products SET current_price = ? WHERE id = ?",
                    (price, product_id),
                )
                history = self._add_history_point(product_id, price, ts)
                self._conn.commit()
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise DataClientError(str(exc)) from exc
            new = self._fetch_product(product_id)

        logger.info("Recorded price %.2f for product %s", price, product_id)
        self._dispatch(ChangeEvent(PRODUCTS, UPDATE, new, old))
        self._dispatch(ChangeEvent(PRICE_HISTORY, INSERT, history))
        return history

    # ── Internals (caller holds the lock) ────────────────

    def _apply_update(
        self, old: Record, changes: Record,
    ) -> tuple[Record, Record | None]:
        assignments = ", ".join(f"{c} = ?" for c in changes)
        history: Record | None = None
        try:
            self._conn.execute(
                f"UPDATE products SET {assignments} WHERE id = ?",
                [*changes.values(), old["id"]],
            )
            new_price = changes.get("current_price")
            if (
                new_price is not None
                and float(new_price) != old["current_price"]
            ):
                history = self._add_history_point(
                    old["id"], new_price, _now(),
                )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise DataClientError(str(exc)) from exc
        logger.info(
            "Updated product %s: %s", old["id"], sorted(changes),
        )
        return self._fetch_product(old["id"]), history

    def _add_history_point(
        self, product_id: str, price: Any, recorded_at: str,
    ) -> Record:
        point: Record = {
            "id": str(uuid.uuid4()),
            "product_id": product_id,
            "price": price,
            "recorded_at": recorded_at,
        }
        self._conn.execute(
            "INSERT INTO price_history "
            "(id, product_id, price, recorded_at) VALUES (?, ?, ?, ?)",
            (point["id"], product_id, price, recorded_at),
        )
        return point

    def _fetch_product(self, product_id: str) -> Record:
        row = self._conn.execute(
            "SELECT * FROM products WHERE id = ?", (product_id,),
        ).fetchone()
        return _row_to_record(PRODUCTS, row)
