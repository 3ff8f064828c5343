"""Shape ranked aggregates into the ComparisonResult consumers read."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from .models import ComparisonResult, StoreAggregate


def empty_result(total_items: int = 0, currency: str = "USD") -> ComparisonResult:
    """No comparison: empty list, or no store met the threshold."""
    return ComparisonResult(
        store_prices=[],
        best_store=None,
        best_total_price=Decimal("0"),
        best_currency=currency,
        total_items=total_items,
        available_items=0,
    )


def assemble(
    ranked: Sequence[StoreAggregate],
    total_items: int,
    currency: str = "USD",
) -> ComparisonResult:
    """Build the result from aggregates already ranked cheapest first."""
    if not ranked:
        return empty_result(total_items, currency)

    best = ranked[0]
    return ComparisonResult(
        store_prices=list(ranked),
        best_store=best.store,
        best_total_price=best.total_price,
        best_currency=best.currency,
        total_items=total_items,
        available_items=best.available_items,
    )
