"""Price store: read/write access to persisted items and prices.

PriceStore is the contract the comparison engine depends on. SQLitePriceStore
implements it over the cartwise.database schema and also carries the write
operations the app uses to feed prices in (items, locations, price records).

Every method opens and closes its own connection, so the store can be used
from refresh worker threads. sqlite3 errors surface as RepositoryError.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from ..common.config import Config
from ..common.errors import RepositoryError
from ..common.events import GLOBAL_EVENT_BUS, EventBus, PriceUpdated, publish_price_updated
from ..database.connection import get_connection
from ..database.models import ItemPrice, Location, from_cents, to_cents
from .models import PricePoint, PriceSnapshot, ShoppingListItem

logger = logging.getLogger(__name__)

# SQLite's default limit on bound parameters is 999
_MAX_IDS_PER_QUERY = 500

# External provider consulted on refresh; None means "price unchanged"
PriceSource = Callable[[PricePoint], Decimal | None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriceStore(Protocol):
    """What the comparison engine needs from persistence."""

    def fetch_shopping_list_items(self) -> list[ShoppingListItem]:
        ...

    def fetch_price_points(self, item_ids: Iterable[str]) -> PriceSnapshot:
        ...

    def refresh_price_point(self, point: PricePoint) -> PricePoint:
        ...


class SQLitePriceStore:
    """PriceStore backed by the SQLite schema in cartwise.database.

    Usage:
        store = SQLitePriceStore(Config())
        milk = store.add_item("Milk", brand="Acme")
        store.record_price(milk.item_id, "Store A", Decimal("3.00"), contributor="alex")
        snapshot = store.fetch_price_points([milk.item_id])
    """

    def __init__(
        self,
        config: Config | None = None,
        event_bus: EventBus | None = None,
        price_source: PriceSource | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or Config()
        self._bus = event_bus or GLOBAL_EVENT_BUS
        self._price_source = price_source
        self._clock = clock or _utcnow

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = get_connection(self.config)
        except (sqlite3.Error, OSError) as exc:
            raise RepositoryError(
                f"Cannot open price database at {self.config.database_abs_path}: {exc}"
            ) from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.rollback()
            raise RepositoryError(f"Price database operation failed: {exc}") from exc
        finally:
            conn.close()

    # --- Reads ---

    def fetch_shopping_list_items(self) -> list[ShoppingListItem]:
        """Items currently on the shopping list, in the order they were added."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT id, name, brand, category FROM grocery_items
                   WHERE in_shopping_list = 1 ORDER BY rowid"""
            ).fetchall()

        return [
            ShoppingListItem(
                item_id=row["id"],
                name=row["name"],
                brand=row["brand"],
                category=row["category"],
            )
            for row in rows
        ]

    def fetch_price_points(self, item_ids: Iterable[str]) -> PriceSnapshot:
        """Prices for the given items, grouped by store.

        All chunks are read inside one transaction so a concurrent writer
        cannot make part of the snapshot newer than the rest.
        """
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}

        snapshot: PriceSnapshot = {}
        with self._connect() as conn:
            conn.execute("BEGIN")
            try:
                for start in range(0, len(ids), _MAX_IDS_PER_QUERY):
                    chunk = ids[start:start + _MAX_IDS_PER_QUERY]
                    placeholders = ",".join("?" * len(chunk))
                    rows = conn.execute(
                        f"""SELECT id, item_id, store, location_id, price_cents,
                                   currency, contributor, last_updated
                            FROM item_prices WHERE item_id IN ({placeholders})
                            ORDER BY store, item_id""",
                        chunk,
                    ).fetchall()
                    for row in rows:
                        point = self._to_point(ItemPrice.from_row(row))
                        snapshot.setdefault(point.store, {})[point.item_id] = point
            finally:
                conn.commit()

        logger.debug(
            "Fetched prices for %d items across %d stores", len(ids), len(snapshot)
        )
        return snapshot

    # --- Writes ---

    def refresh_price_point(self, point: PricePoint) -> PricePoint:
        """Refresh one stored price from its source.

        Without a price source (or when it has nothing new) the stored
        price is re-confirmed: only last_updated moves to now.

        Raises:
            RepositoryError: Record missing, provider failure or database error.
        """
        if point.price_id is None:
            raise RepositoryError(
                f"Cannot refresh unsaved price for item {point.item_id} at {point.store}"
            )

        new_amount: Decimal | None = None
        if self._price_source is not None:
            try:
                new_amount = self._price_source(point)
            except Exception as exc:
                raise RepositoryError(
                    f"Price source failed for item {point.item_id} at {point.store}: {exc}"
                ) from exc

        now = self._clock()
        with self._connect() as conn:
            row = conn.execute(
                """SELECT p.*, g.name AS item_name FROM item_prices p
                   JOIN grocery_items g ON g.id = p.item_id
                   WHERE p.id = ?""",
                (point.price_id,),
            ).fetchone()
            if row is None:
                raise RepositoryError(f"Price record {point.price_id} no longer exists")

            stored = ItemPrice.from_row(row)
            cents = stored.price_cents if new_amount is None else to_cents(new_amount)
            conn.execute(
                "UPDATE item_prices SET price_cents = ?, last_updated = ? WHERE id = ?",
                (cents, now.isoformat(), stored.id),
            )
            conn.commit()
            item_name = row["item_name"]

        previous_cents = stored.price_cents
        stored.price_cents = cents
        stored.last_updated = now
        refreshed = self._to_point(stored)

        if cents != previous_cents:
            publish_price_updated(
                PriceUpdated(
                    item_id=refreshed.item_id,
                    item_name=item_name,
                    store=refreshed.store,
                    price=refreshed.amount,
                    currency=refreshed.currency,
                    contributor=refreshed.contributor,
                    previous_price=from_cents(previous_cents),
                    occurred_at=now,
                ),
                self._bus,
            )
        logger.debug(
            "Refreshed %s at %s: %s -> %s",
            item_name, refreshed.store, from_cents(previous_cents), refreshed.amount,
        )
        return refreshed

    def record_price(
        self,
        item_id: str,
        store: str,
        amount: Decimal | float | str,
        contributor: str,
        currency: str | None = None,
        updated_at: datetime | None = None,
    ) -> PricePoint:
        """Insert or replace the price of an item at a store.

        Publishes a price.updated event once the write has committed.

        Raises:
            ValueError: Unknown item, empty store name or negative amount.
            RepositoryError: Database error.
        """
        store = store.strip()
        if not store:
            raise ValueError("store name must not be empty")
        cents = to_cents(amount)
        if cents < 0:
            raise ValueError(f"price must be non-negative, got {amount}")
        currency = (currency or self.config.currency).upper()
        updated_at = updated_at or self._clock()
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)

        with self._connect() as conn:
            item = conn.execute(
                "SELECT name FROM grocery_items WHERE id = ?", (item_id,)
            ).fetchone()
            if item is None:
                raise ValueError(f"Item {item_id} not found")

            previous = conn.execute(
                "SELECT price_cents FROM item_prices WHERE item_id = ? AND store = ?",
                (item_id, store),
            ).fetchone()
            location = conn.execute(
                "SELECT id FROM locations WHERE name = ?", (store,)
            ).fetchone()

            conn.execute(
                """
                INSERT INTO item_prices
                    (item_id, store, location_id, price_cents, currency, contributor, last_updated)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(item_id, store) DO UPDATE SET
                    location_id = excluded.location_id,
                    price_cents = excluded.price_cents,
                    currency = excluded.currency,
                    contributor = excluded.contributor,
                    last_updated = excluded.last_updated
                """,
                (
                    item_id,
                    store,
                    location["id"] if location else None,
                    cents,
                    currency,
                    contributor,
                    updated_at.isoformat(),
                ),
            )
            price_id = conn.execute(
                "SELECT id FROM item_prices WHERE item_id = ? AND store = ?",
                (item_id, store),
            ).fetchone()["id"]
            conn.commit()

        point = PricePoint(
            item_id=item_id,
            store=store,
            amount=from_cents(cents),
            currency=currency,
            last_updated=updated_at,
            contributor=contributor,
            price_id=price_id,
        )
        publish_price_updated(
            PriceUpdated(
                item_id=item_id,
                item_name=item["name"],
                store=store,
                price=point.amount,
                currency=currency,
                contributor=contributor,
                previous_price=from_cents(previous["price_cents"]) if previous else None,
                occurred_at=updated_at,
            ),
            self._bus,
        )
        logger.info("Recorded %s at %s: %s %s (%s)", item["name"], store, point.amount, currency, contributor)
        return point

    def add_item(
        self,
        name: str,
        brand: str | None = None,
        category: str | None = None,
        in_shopping_list: bool = True,
        item_id: str | None = None,
    ) -> ShoppingListItem:
        """Create a grocery item, on the shopping list by default."""
        item = ShoppingListItem(
            item_id=item_id or uuid.uuid4().hex,
            name=name.strip(),
            brand=brand,
            category=category,
        )
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO grocery_items (id, name, brand, category, in_shopping_list)
                   VALUES (?, ?, ?, ?, ?)""",
                (item.item_id, item.name, brand, category, int(in_shopping_list)),
            )
            conn.commit()
        return item

    def ensure_item(
        self,
        name: str,
        brand: str | None = None,
        category: str | None = None,
        in_shopping_list: bool = True,
    ) -> ShoppingListItem:
        """Get or create a grocery item by (name, brand).

        An existing item keeps its id; its category and shopping-list flag
        are updated to the given values.
        """
        name = name.strip()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM grocery_items WHERE name = ? AND brand IS ? ORDER BY rowid LIMIT 1",
                (name, brand),
            ).fetchone()
            if row is not None:
                conn.execute(
                    "UPDATE grocery_items SET category = ?, in_shopping_list = ? WHERE id = ?",
                    (category, int(in_shopping_list), row["id"]),
                )
                conn.commit()
                return ShoppingListItem(
                    item_id=row["id"], name=name, brand=brand, category=category
                )

        return self.add_item(name, brand=brand, category=category, in_shopping_list=in_shopping_list)

    def set_in_shopping_list(self, item_id: str, in_shopping_list: bool) -> None:
        """Add an item to, or remove it from, the shopping list."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE grocery_items SET in_shopping_list = ? WHERE id = ?",
                (int(in_shopping_list), item_id),
            )
            conn.commit()
            updated = cursor.rowcount
        if updated == 0:
            raise ValueError(f"Item {item_id} not found")

    def add_location(
        self,
        name: str,
        address: str = "",
        city: str = "",
        state: str = "",
        zip_code: str = "",
    ) -> Location:
        """Get or create a store location by name."""
        name = name.strip()
        if not name:
            raise ValueError("location name must not be empty")
        with self._connect() as conn:
            conn.execute(
                """INSERT OR IGNORE INTO locations (name, address, city, state, zip_code)
                   VALUES (?, ?, ?, ?, ?)""",
                (name, address, city, state, zip_code),
            )
            row = conn.execute(
                "SELECT * FROM locations WHERE name = ?", (name,)
            ).fetchone()
            conn.commit()
        return Location.from_row(row)

    @staticmethod
    def _to_point(price: ItemPrice) -> PricePoint:
        return PricePoint(
            item_id=price.item_id,
            store=price.store,
            amount=price.amount,
            currency=price.currency,
            last_updated=price.last_updated,
            contributor=price.contributor,
            price_id=price.id,
        )
