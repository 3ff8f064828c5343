# Common utilities and shared modules
"""
Shared components used by the database and comparison packages:
- Configuration
- Logging configuration
- Error taxonomy
- Price update events
"""

from .config import Config
from .errors import ComparisonError, CurrencyMismatchError, RepositoryError
from .events import (
    GLOBAL_EVENT_BUS,
    PRICE_UPDATED,
    EventBus,
    PriceUpdated,
    publish_price_updated,
)
from .logging import setup_logging

__all__ = [
    "Config",
    "ComparisonError",
    "CurrencyMismatchError",
    "RepositoryError",
    "EventBus",
    "GLOBAL_EVENT_BUS",
    "PRICE_UPDATED",
    "PriceUpdated",
    "publish_price_updated",
    "setup_logging",
]
