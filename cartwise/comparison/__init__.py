"""Price Comparison Module - refresh, filter, aggregate and rank store prices."""

from .aggregation import AggregationEngine, dedupe_items, item_labels
from .assembler import assemble, empty_result
from .availability import AvailabilityFilter, coverage
from .engine import PriceComparisonEngine
from .models import (
    ComparisonResult,
    PricePoint,
    PriceSnapshot,
    ShoppingListItem,
    StoreAggregate,
)
from .price_store import PriceStore, SQLitePriceStore
from .refresher import RefreshReport, StalenessRefresher

__all__ = [
    "AggregationEngine",
    "AvailabilityFilter",
    "ComparisonResult",
    "PriceComparisonEngine",
    "PricePoint",
    "PriceSnapshot",
    "PriceStore",
    "RefreshReport",
    "SQLitePriceStore",
    "ShoppingListItem",
    "StalenessRefresher",
    "StoreAggregate",
    "assemble",
    "coverage",
    "dedupe_items",
    "empty_result",
    "item_labels",
]
