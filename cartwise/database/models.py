"""Row models for the storage layer."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def to_cents(amount: Decimal | float | int | str) -> int:
    """Convert a money amount to integer cents (half-up rounding)."""
    return int((Decimal(str(amount)) / _CENT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) * _CENT).quantize(_CENT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored ISO timestamp; naive values are taken as UTC."""
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass
class Location:
    """A physical store location."""

    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    favorited: bool = False
    is_default: bool = False
    id: int | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Location:
        return cls(
            id=row["id"],
            name=row["name"],
            address=row["address"] or "",
            city=row["city"] or "",
            state=row["state"] or "",
            zip_code=row["zip_code"] or "",
            favorited=bool(row["favorited"]),
            is_default=bool(row["is_default"]),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "favorited": self.favorited,
            "is_default": self.is_default,
        }


@dataclass
class ItemPrice:
    """One stored price for an item at a store."""

    item_id: str
    store: str
    price_cents: int
    last_updated: datetime
    currency: str = "USD"
    contributor: str = ""
    location_id: int | None = None
    id: int | None = None

    @property
    def amount(self) -> Decimal:
        return from_cents(self.price_cents)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ItemPrice:
        return cls(
            id=row["id"],
            item_id=row["item_id"],
            store=row["store"],
            location_id=row["location_id"],
            price_cents=row["price_cents"],
            currency=row["currency"],
            contributor=row["contributor"] or "",
            last_updated=parse_timestamp(row["last_updated"]),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "store": self.store,
            "price": str(self.amount),
            "currency": self.currency,
            "contributor": self.contributor,
            "last_updated": self.last_updated.isoformat(),
        }
