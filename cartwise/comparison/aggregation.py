"""Per-store aggregation and best-store selection.

For each store that passed the availability filter:
    total_price       = sum of the store's prices for list items
    available_items   = list items priced at the store
    unavailable_items = list items not priced there
    item_prices / item_shoppers keyed by item display name

Ranking is by total ascending, then more available items, then store name,
so the order never depends on how the snapshot was built.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from ..common.errors import CurrencyMismatchError
from .models import PricePoint, PriceSnapshot, ShoppingListItem, StoreAggregate

logger = logging.getLogger(__name__)


def dedupe_items(items: Iterable[ShoppingListItem]) -> list[ShoppingListItem]:
    """Drop repeated item ids, keeping the first occurrence and list order."""
    seen: dict[str, ShoppingListItem] = {}
    for item in items:
        seen.setdefault(item.item_id, item)
    return list(seen.values())


def item_labels(items: Sequence[ShoppingListItem]) -> dict[str, str]:
    """Map item id -> display key used in item_prices.

    A name already taken by an earlier item becomes "name (item_id)". If
    that clashes with another item's own name, "name (item_id #2)" and so on.
    Every item gets a distinct key.
    """
    names = {item.name for item in items}
    labels: dict[str, str] = {}
    taken: set[str] = set()
    for item in items:
        label = item.name
        if label in taken:
            label = f"{item.name} ({item.item_id})"
            n = 2
            while label in taken or label in names:
                label = f"{item.name} ({item.item_id} #{n})"
                n += 1
        taken.add(label)
        labels[item.item_id] = label
    return labels


def rank_key(aggregate: StoreAggregate) -> tuple[Decimal, int, str]:
    return (aggregate.total_price, -aggregate.available_items, aggregate.store)


class AggregationEngine:
    """Roll price points up into StoreAggregates and pick the cheapest store."""

    def __init__(self, currency: str = "USD") -> None:
        self.currency = currency

    def aggregate_store(
        self,
        store: str,
        prices: Mapping[str, PricePoint],
        items: Sequence[ShoppingListItem],
        labels: Mapping[str, str] | None = None,
    ) -> StoreAggregate:
        """Build the aggregate for one store.

        Args:
            store: Store name.
            prices: Item id -> PricePoint at this store.
            items: Distinct shopping-list items, in list order.
            labels: Item id -> display key (see item_labels).
        """
        labels = labels or item_labels(items)
        total = Decimal("0")
        available = 0
        item_prices: dict[str, Decimal] = {}
        item_shoppers: dict[str, str] = {}

        for item in items:
            point = prices.get(item.item_id)
            if point is None:
                continue
            label = labels[item.item_id]
            total += point.amount
            available += 1
            item_prices[label] = point.amount
            item_shoppers[label] = point.contributor

        return StoreAggregate(
            store=store,
            total_price=total,
            currency=self.currency,
            available_items=available,
            unavailable_items=len(items) - available,
            item_prices=item_prices,
            item_shoppers=item_shoppers,
        )

    @staticmethod
    def rank(aggregates: Iterable[StoreAggregate]) -> list[StoreAggregate]:
        return sorted(aggregates, key=rank_key)

    @staticmethod
    def select_best(aggregates: Iterable[StoreAggregate]) -> StoreAggregate | None:
        return min(aggregates, key=rank_key, default=None)

    def check_currency(self, snapshot: PriceSnapshot, stores: Iterable[str]) -> None:
        """Raise CurrencyMismatchError unless every point uses self.currency."""
        currencies = {
            point.currency.upper()
            for store in stores
            for point in snapshot.get(store, {}).values()
        }
        if currencies - {self.currency.upper()}:
            raise CurrencyMismatchError(currencies | {self.currency.upper()})

    def run(
        self,
        snapshot: PriceSnapshot,
        stores: Iterable[str],
        items: Sequence[ShoppingListItem],
    ) -> list[StoreAggregate]:
        """Aggregate the given stores and return them ranked, cheapest first."""
        stores = list(stores)
        self.check_currency(snapshot, stores)

        labels = item_labels(items)
        aggregates = [
            self.aggregate_store(store, snapshot.get(store, {}), items, labels)
            for store in stores
        ]
        ranked = self.rank(aggregates)

        for agg in ranked:
            logger.debug(
                "  %s: %s %s (%d/%d items)",
                agg.store, agg.total_price, agg.currency,
                agg.available_items, agg.total_items,
            )
        return ranked
