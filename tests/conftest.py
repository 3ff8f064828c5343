"""Shared test fixtures for CartWise."""

import sys
import threading
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Ensure cartwise is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from cartwise.common.config import Config
from cartwise.common.errors import RepositoryError
from cartwise.common.events import EventBus
from cartwise.comparison.models import PricePoint, ShoppingListItem
from cartwise.comparison.price_store import SQLitePriceStore
from cartwise.database.connection import get_connection, init_db

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_point(item_id, store, amount, days_old=0, currency="USD", contributor="alex", price_id=None):
    """PricePoint recorded days_old days before NOW."""
    return PricePoint(
        item_id=item_id,
        store=store,
        amount=Decimal(str(amount)),
        currency=currency,
        last_updated=NOW - timedelta(days=days_old),
        contributor=contributor,
        price_id=price_id,
    )


def make_items(*names):
    """ShoppingListItems with ids derived from their names."""
    return [ShoppingListItem(item_id=name.lower(), name=name) for name in names]


class InMemoryPriceStore:
    """PriceStore over plain dicts, for engine and refresher tests.

    refresh_price_point re-confirms the stored price at NOW (or applies
    new_prices), raises RepositoryError for keys in fail_refresh, and
    records how many refreshes ran at once.
    """

    def __init__(self, points=(), items=(), fail_refresh=(), new_prices=None, refresh_delay=0.0):
        self.items = list(items)
        self.points = {}
        for point in points:
            self.points[(point.store, point.item_id)] = point
        self.fail_refresh = set(fail_refresh)
        self.new_prices = dict(new_prices or {})
        self.refresh_delay = refresh_delay

        self.fetch_calls = 0
        self.refresh_calls = []
        self.max_concurrent = 0
        self._running = 0
        self._lock = threading.Lock()

    def fetch_shopping_list_items(self):
        return list(self.items)

    def fetch_price_points(self, item_ids):
        self.fetch_calls += 1
        wanted = set(item_ids)
        snapshot = {}
        for (store, item_id), point in sorted(self.points.items()):
            if item_id in wanted:
                snapshot.setdefault(store, {})[item_id] = point
        return snapshot

    def refresh_price_point(self, point):
        key = (point.store, point.item_id)
        with self._lock:
            self.refresh_calls.append(key)
            self._running += 1
            self.max_concurrent = max(self.max_concurrent, self._running)
        try:
            if self.refresh_delay:
                time.sleep(self.refresh_delay)
            if key in self.fail_refresh:
                raise RepositoryError(f"price source unavailable for {key}")
            amount = self.new_prices.get(key, point.amount)
            refreshed = point.model_copy(update={"amount": Decimal(str(amount)), "last_updated": NOW})
            self.points[key] = refreshed
            return refreshed
        finally:
            with self._lock:
                self._running -= 1


class FailingPriceStore(InMemoryPriceStore):
    """Store whose reads always fail."""

    def fetch_price_points(self, item_ids):
        self.fetch_calls += 1
        raise RepositoryError("database is locked")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Environment overrides win over constructor args, so clear them."""
    for name in (
        "CARTWISE_DATABASE_PATH",
        "CARTWISE_STALE_AFTER_DAYS",
        "CARTWISE_AVAILABILITY_THRESHOLD",
        "CARTWISE_REFRESH_CONCURRENCY",
        "CARTWISE_CURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the sample data directory."""
    return PROJECT_ROOT / "fixtures"


@pytest.fixture
def temp_db(tmp_path):
    """Provide a Config pointing to a temporary SQLite database."""
    db_file = tmp_path / "test_cartwise.db"
    config = Config(database_path=str(db_file))
    init_db(config)
    return config


@pytest.fixture
def db_conn(temp_db):
    """Provide an initialized SQLite connection from temp_db."""
    conn = get_connection(temp_db)
    yield conn
    conn.close()


@pytest.fixture
def event_bus() -> EventBus:
    """A private bus so tests never see each other's events."""
    return EventBus()


@pytest.fixture
def received(event_bus):
    """Events published on event_bus, as (event_name, payload) tuples."""
    events = []
    event_bus.subscribe("price.updated", lambda name, payload: events.append((name, payload)))
    return events


@pytest.fixture
def price_store(temp_db, event_bus) -> SQLitePriceStore:
    """SQLitePriceStore on temp_db whose clock is fixed at NOW."""
    return SQLitePriceStore(temp_db, event_bus=event_bus, clock=lambda: NOW)


@pytest.fixture
def clock():
    return lambda: NOW
