"""CLI entry point for the price comparison engine.

Usage:
    python -m cartwise.comparison.main
    python -m cartwise.comparison.main --seed fixtures/sample_shopping.yaml --output data/exports/comparison.json
    python -m cartwise.comparison.main --db /tmp/cartwise.db --no-refresh --verbose
"""

from __future__ import annotations

import argparse
import json
import logging
import sqlite3
import sys
from pathlib import Path

import yaml

from ..common.config import Config
from ..common.errors import ComparisonError, RepositoryError
from ..common.logging import setup_logging
from ..database.connection import init_db
from ..database.seed import load_seed_file, seed_database
from .engine import PriceComparisonEngine
from .models import ComparisonResult
from .price_store import SQLitePriceStore

logger = logging.getLogger(__name__)


def _log_result(result: ComparisonResult) -> None:
    if result.total_items == 0:
        logger.info("Your shopping list is empty. Add items to compare prices.")
        return
    if not result.has_comparison:
        logger.info(
            "No store has prices for enough of your %d items yet. "
            "Record more prices to see a comparison.",
            result.total_items,
        )
        return

    logger.info(
        "=== Best store: %s, %s %s (%d/%d items) ===",
        result.best_store,
        result.best_total_price,
        result.best_currency,
        result.available_items,
        result.total_items,
    )
    for rank, agg in enumerate(result.store_prices, start=1):
        logger.info(
            "  %d. %s: %s %s, %d available, %d missing",
            rank, agg.store, agg.total_price, agg.currency,
            agg.available_items, agg.unavailable_items,
        )
    for name, delta in result.price_deltas().items():
        logger.info("    %s: %+.2f vs cheapest elsewhere", name, delta)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CartWise local price comparison")
    parser.add_argument(
        "--db",
        type=str,
        help="SQLite database path (default: CARTWISE_DATABASE_PATH or data/cartwise.db)",
    )
    parser.add_argument(
        "--seed",
        type=str,
        help="YAML file with locations, items and prices to load before comparing",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Output JSON file path",
    )
    parser.add_argument(
        "--no-refresh",
        action="store_true",
        help="Compare stored prices as-is, without refreshing stale ones",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-store and per-item detail",
    )

    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = Config(database_path=args.db) if args.db else Config()
    store = SQLitePriceStore(config)

    try:
        init_db(config)
    except (sqlite3.Error, OSError) as e:
        logger.error("Could not open database %s: %s", config.database_abs_path, e)
        return 1

    try:
        if args.seed:
            seed_database(store, load_seed_file(args.seed))
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Could not load seed data from %s: %s", args.seed, e)
        return 1
    except RepositoryError as e:
        logger.error("Could not save seed data: %s", e)
        return 1

    engine = PriceComparisonEngine(store, config, refresh_stale=not args.no_refresh)
    try:
        result = engine.compare_sync()
    except RepositoryError as e:
        logger.error("Could not read prices: %s", e)
        return 1
    except ComparisonError as e:
        logger.error("Comparison failed: %s", e)
        return 1

    _log_result(result)

    if args.output:
        try:
            Path(args.output).parent.mkdir(parents=True, exist_ok=True)
            with open(args.output, "w", encoding="utf-8") as f:
                json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error("Could not write output to %s: %s", args.output, e)
            return 1
        logger.info("Output written to %s", args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
