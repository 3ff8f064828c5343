"""Pydantic data models for the price comparison pipeline.

These models are the contract between the price store, the comparison
engine and its consumers (UI, activity feed, reputation). All are frozen:
a ComparisonResult is a snapshot and is rebuilt on every request.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ShoppingListItem(BaseModel):
    """An item on the shopping list."""
    model_config = ConfigDict(frozen=True)

    item_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    brand: str | None = None
    category: str | None = None


class PricePoint(BaseModel):
    """One recorded price for one item at one store."""
    model_config = ConfigDict(frozen=True)

    item_id: str
    store: str
    amount: Decimal = Field(ge=0, description="Price in currency units")
    currency: str = "USD"
    last_updated: datetime
    contributor: str = ""
    price_id: int | None = Field(default=None, description="Stored record key")


# store name -> item id -> PricePoint
PriceSnapshot = dict[str, dict[str, PricePoint]]


class StoreAggregate(BaseModel):
    """Per-store rollup for one comparison run."""
    model_config = ConfigDict(frozen=True)

    store: str
    total_price: Decimal
    currency: str
    available_items: int = Field(ge=0)
    unavailable_items: int = Field(ge=0)
    item_prices: dict[str, Decimal] = Field(default_factory=dict)
    item_shoppers: dict[str, str] = Field(default_factory=dict)

    @property
    def total_items(self) -> int:
        return self.available_items + self.unavailable_items

    @property
    def coverage(self) -> float:
        if self.total_items == 0:
            return 0.0
        return self.available_items / self.total_items


class ComparisonResult(BaseModel):
    """Outcome of one comparison, ranked cheapest first.

    best_store is None when no store met the availability threshold (or the
    list was empty); best_total_price is then 0. available_items is the
    count available at the best store.
    """
    model_config = ConfigDict(frozen=True)

    store_prices: list[StoreAggregate] = Field(default_factory=list)
    best_store: str | None = None
    best_total_price: Decimal = Decimal("0")
    best_currency: str = "USD"
    total_items: int = Field(default=0, ge=0)
    available_items: int = Field(default=0, ge=0)

    @property
    def has_comparison(self) -> bool:
        return self.best_store is not None

    @property
    def best(self) -> StoreAggregate | None:
        return self.store_prices[0] if self.store_prices else None

    def price_deltas(self) -> dict[str, Decimal]:
        """Best store's price per item minus the lowest price elsewhere.

        Only items priced at the best store and at least one other
        qualifying store are included. Negative means the best store is
        cheaper for that item.
        """
        best = self.best
        if best is None:
            return {}

        deltas: dict[str, Decimal] = {}
        for name, price in best.item_prices.items():
            others = [
                agg.item_prices[name]
                for agg in self.store_prices[1:]
                if name in agg.item_prices
            ]
            if others:
                deltas[name] = price - min(others)
        return deltas

    def to_dict(self) -> dict:
        """JSON-safe dict (decimals as strings)."""
        return self.model_dump(mode="json")
