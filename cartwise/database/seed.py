"""Seed locations, items and prices from a YAML file.

File layout:

    contributor: TestData        # default contributor for prices
    currency: USD
    locations:
      - name: Store A
        city: Springfield
    items:
      - name: Milk
        brand: Acme
        category: Dairy
        in_shopping_list: true
        prices:
          Store A: 3.00
          Store B: {price: 2.50, contributor: sam, days_ago: 20}

Items are matched by (name, brand) and prices replace the stored price for
the same item and store, so loading a file twice leaves one copy of each.
Prices go through SQLitePriceStore.record_price, so price.updated events
fire as they would for a user entry.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from ..comparison.price_store import SQLitePriceStore

logger = logging.getLogger(__name__)

DEFAULT_CONTRIBUTOR = "TestData"


def load_seed_file(path: str | Path) -> dict:
    """Load and minimally validate a seed YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        yaml.YAMLError: If the YAML is malformed.
        ValueError: If the root is not a mapping.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error("Seed file not found: %s", path)
        raise
    except yaml.YAMLError as e:
        logger.error("Invalid YAML in seed file %s: %s", path, e)
        raise

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Seed file must contain a mapping, got {type(data).__name__}")
    return data


def _parse_price(value: Any) -> tuple[Decimal, str | None, int]:
    """Return (amount, contributor or None, days_ago) for one price entry."""
    contributor = None
    days_ago = 0
    if isinstance(value, dict):
        contributor = value.get("contributor")
        days_ago = int(value.get("days_ago", 0))
        value = value.get("price")
    if value is None or isinstance(value, bool):
        raise ValueError(f"missing price in {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"invalid price {value!r}") from e
    if amount < 0:
        raise ValueError(f"negative price {value!r}")
    return amount, contributor, days_ago


def seed_database(
    store: SQLitePriceStore,
    data: dict,
    now: datetime | None = None,
) -> dict[str, int]:
    """Create the locations, items and prices described by data.

    Malformed entries are skipped with a warning.

    Returns:
        Counts: locations, items, prices, skipped.
    """
    now = now or datetime.now(timezone.utc)
    default_contributor = str(data.get("contributor", DEFAULT_CONTRIBUTOR))
    currency = data.get("currency")
    counts = {"locations": 0, "items": 0, "prices": 0, "skipped": 0}

    for entry in data.get("locations", []) or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            logger.warning("Skipping invalid location entry: %r", entry)
            counts["skipped"] += 1
            continue
        store.add_location(
            str(entry["name"]),
            address=str(entry.get("address", "")),
            city=str(entry.get("city", "")),
            state=str(entry.get("state", "")),
            zip_code=str(entry.get("zip_code", "")),
        )
        counts["locations"] += 1

    for entry in data.get("items", []) or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            logger.warning("Skipping invalid item entry: %r", entry)
            counts["skipped"] += 1
            continue

        item = store.ensure_item(
            str(entry["name"]),
            brand=entry.get("brand"),
            category=entry.get("category"),
            in_shopping_list=bool(entry.get("in_shopping_list", True)),
        )
        counts["items"] += 1

        prices = entry.get("prices", {}) or {}
        if not isinstance(prices, dict):
            logger.warning("Item '%s' prices must be a mapping of store -> price, skipping", item.name)
            counts["skipped"] += 1
            continue

        for store_name, value in prices.items():
            try:
                amount, contributor, days_ago = _parse_price(value)
            except (ValueError, TypeError) as e:
                logger.warning("Skipping price for '%s' at %s: %s", item.name, store_name, e)
                counts["skipped"] += 1
                continue
            store.record_price(
                item.item_id,
                str(store_name),
                amount,
                contributor=contributor or default_contributor,
                currency=currency,
                updated_at=now - timedelta(days=days_ago),
            )
            counts["prices"] += 1

    logger.info(
        "Seeded %d locations, %d items, %d prices (%d entries skipped)",
        counts["locations"], counts["items"], counts["prices"], counts["skipped"],
    )
    return counts
