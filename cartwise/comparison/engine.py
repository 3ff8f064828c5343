"""Local multi-store price comparison.

Pipeline per request:
    refresh stale prices -> snapshot -> availability filter -> aggregate -> assemble

The engine holds no state between requests; every call rebuilds the result
from the store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from ..common.config import Config
from .aggregation import AggregationEngine, dedupe_items
from .assembler import assemble, empty_result
from .availability import AvailabilityFilter
from .models import ComparisonResult, PriceSnapshot, ShoppingListItem
from .price_store import PriceStore
from .refresher import StalenessRefresher

logger = logging.getLogger(__name__)


class PriceComparisonEngine:
    """Compare a shopping list across the stores that priced it.

    Usage:
        engine = PriceComparisonEngine(SQLitePriceStore(config), config)
        result = await engine.compare_shopping_list()
        if result.has_comparison:
            print(result.best_store, result.best_total_price)

    Raises from compare():
        RepositoryError: The store could not be read.
        CurrencyMismatchError: Qualifying stores priced in another currency.
    """

    def __init__(
        self,
        store: PriceStore,
        config: Config | None = None,
        refresher: StalenessRefresher | None = None,
        clock: Callable[[], datetime] | None = None,
        refresh_stale: bool = True,
    ) -> None:
        self.store = store
        self.config = config or Config()
        self.refresher = refresher or StalenessRefresher(store, self.config, clock=clock)
        self.availability = AvailabilityFilter(self.config.availability_threshold)
        self.aggregator = AggregationEngine(self.config.currency)
        self.refresh_stale = refresh_stale

    async def compare(self, items: Iterable[ShoppingListItem]) -> ComparisonResult:
        """Run the full pipeline for the given items."""
        items = dedupe_items(items)
        total_items = len(items)
        if not items:
            logger.info("Shopping list is empty, no comparison available")
            return empty_result(0, self.config.currency)

        item_ids = [item.item_id for item in items]
        snapshot = await self._fetch_snapshot(item_ids)

        if self.refresh_stale:
            report = await self.refresher.refresh(snapshot)
            if report.attempted:
                snapshot = await self._fetch_snapshot(item_ids)

        wanted = set(item_ids)
        priced_by_store = {
            store: [item_id for item_id in points if item_id in wanted]
            for store, points in snapshot.items()
        }
        stores = self.availability.filter(priced_by_store, total_items)
        if not stores:
            logger.info(
                "No store prices at least %.0f%% of %d items (%d stores checked)",
                self.availability.threshold * 100, total_items, len(snapshot),
            )
            return empty_result(total_items, self.config.currency)

        ranked = self.aggregator.run(snapshot, stores, items)
        result = assemble(ranked, total_items, self.config.currency)

        logger.info(
            "Comparison complete: %d/%d stores qualify, best %s at %s %s (%d/%d items)",
            len(stores), len(snapshot), result.best_store,
            result.best_total_price, result.best_currency,
            result.available_items, total_items,
        )
        return result

    async def compare_shopping_list(self) -> ComparisonResult:
        """Compare the items currently on the stored shopping list."""
        items = await asyncio.to_thread(self.store.fetch_shopping_list_items)
        return await self.compare(items)

    def compare_sync(self, items: Iterable[ShoppingListItem] | None = None) -> ComparisonResult:
        """Blocking wrapper for callers without an event loop."""
        if items is None:
            return asyncio.run(self.compare_shopping_list())
        return asyncio.run(self.compare(items))

    async def _fetch_snapshot(self, item_ids: list[str]) -> PriceSnapshot:
        return await asyncio.to_thread(self.store.fetch_price_points, item_ids)
