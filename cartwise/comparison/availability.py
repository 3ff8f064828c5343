"""Availability filter: drop stores that price too little of the list."""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.85


def coverage(priced_count: int, total_items: int) -> float:
    """Fraction of the list priced at a store (0.0 for an empty list)."""
    if total_items <= 0:
        return 0.0
    return priced_count / total_items


class AvailabilityFilter:
    """Keep stores whose coverage meets the threshold."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"threshold must be in (0, 1], got {threshold}")
        self.threshold = threshold

    def qualifies(self, priced_count: int, total_items: int) -> bool:
        if total_items <= 0:
            return False
        return coverage(priced_count, total_items) >= self.threshold

    def filter(
        self,
        priced_items_by_store: Mapping[str, Collection[str]],
        total_items: int,
    ) -> list[str]:
        """Names of the stores that qualify, sorted.

        Args:
            priced_items_by_store: Store name -> ids of list items it prices.
            total_items: Number of distinct items on the list.
        """
        kept: list[str] = []
        for store in sorted(priced_items_by_store):
            priced = len(priced_items_by_store[store])
            if self.qualifies(priced, total_items):
                kept.append(store)
            else:
                logger.debug(
                    "Excluding %s: %d/%d items (%.0f%% < %.0f%%)",
                    store, priced, total_items,
                    coverage(priced, total_items) * 100, self.threshold * 100,
                )
        return kept
