"""Event bus for price updates.

Event names:
  price.updated -> payload PriceUpdated

Price writes publish here after they commit. Reputation and activity-feed
systems subscribe on their own; the comparison pipeline never calls them.
Subscribers are callables taking (event_name, payload).
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

logger = logging.getLogger(__name__)

PRICE_UPDATED = "price.updated"

Subscriber = Callable[[str, Any], None]


@dataclass(frozen=True)
class PriceUpdated:
    """A price was recorded or changed for one item at one store."""

    item_id: str
    item_name: str
    store: str
    price: Decimal
    currency: str
    contributor: str
    previous_price: Decimal | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def delta(self) -> Decimal | None:
        if self.previous_price is None:
            return None
        return self.price - self.previous_price

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "store": self.store,
            "price": str(self.price),
            "currency": self.currency,
            "contributor": self.contributor,
            "previous_price": str(self.previous_price) if self.previous_price is not None else None,
            "occurred_at": self.occurred_at.isoformat(),
        }


class EventBus:
    """Synchronous publish/subscribe.

    Refresh workers publish from threads, so the subscriber table is guarded
    by a lock. Callbacks run outside the lock.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, callback: Subscriber) -> None:
        with self._lock:
            if callback not in self._subscribers[event_name]:
                self._subscribers[event_name].append(callback)

    def unsubscribe(self, event_name: str, callback: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers[event_name].remove(callback)
            except ValueError:
                pass

    def publish(self, event_name: str, payload: Any) -> int:
        """Deliver payload to every subscriber of event_name.

        Returns:
            Number of subscribers that handled the event without raising.
        """
        with self._lock:
            callbacks = list(self._subscribers.get(event_name, []))

        delivered = 0
        for cb in callbacks:
            try:
                cb(event_name, payload)
                delivered += 1
            except Exception:
                logger.exception("Error delivering %s to %r", event_name, cb)
        return delivered


# Shared instance for callers that do not inject their own bus
GLOBAL_EVENT_BUS = EventBus()


def publish_price_updated(event: PriceUpdated, bus: EventBus | None = None) -> int:
    """Publish a price.updated event on bus (the global bus by default)."""
    return (bus or GLOBAL_EVENT_BUS).publish(PRICE_UPDATED, event)
