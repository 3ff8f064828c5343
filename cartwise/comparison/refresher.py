"""Staleness refresh: bring old price points up to date before comparing.

A price point is stale once it is older than the freshness window
(14 days by default). Each stale point is refreshed in its own task; the
store call is synchronous, so it runs in a worker thread. Failures are
logged and the stale value stays in use.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from ..common.config import Config
from .models import PricePoint, PriceSnapshot
from .price_store import PriceStore

logger = logging.getLogger(__name__)


@dataclass
class RefreshReport:
    """Outcome of one refresh pass."""

    attempted: int = 0
    refreshed: int = 0
    failed: list[tuple[str, str]] = field(default_factory=list)  # (store, item_id)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "refreshed": self.refreshed,
            "failed": [{"store": s, "item_id": i} for s, i in self.failed],
        }


class StalenessRefresher:
    """Refresh price points older than the freshness window.

    Usage:
        refresher = StalenessRefresher(store, config)
        report = await refresher.refresh(snapshot)
    """

    def __init__(
        self,
        store: PriceStore,
        config: Config | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.config = config or Config()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def window(self) -> timedelta:
        return self.config.stale_after

    def is_stale(self, point: PricePoint, now: datetime) -> bool:
        last_updated = point.last_updated
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        return now - last_updated > self.window

    def find_stale(self, snapshot: PriceSnapshot, now: datetime | None = None) -> list[PricePoint]:
        """Stale points in (store, item_id) order."""
        now = now or self._clock()
        return [
            snapshot[store][item_id]
            for store in sorted(snapshot)
            for item_id in sorted(snapshot[store])
            if self.is_stale(snapshot[store][item_id], now)
        ]

    async def refresh(self, snapshot: PriceSnapshot) -> RefreshReport:
        """Refresh every stale point in snapshot and wait for all of them.

        The gather is shielded: if the caller is cancelled, refreshes that
        already started still run to completion, they just are not awaited
        here any more.
        """
        stale = self.find_stale(snapshot)
        report = RefreshReport(attempted=len(stale))
        if not stale:
            return report

        logger.info(
            "Refreshing %d price points older than %d days",
            len(stale), self.config.stale_after_days,
        )
        semaphore = asyncio.Semaphore(self.config.refresh_concurrency)

        async def _refresh_one(point: PricePoint) -> PricePoint:
            async with semaphore:
                return await asyncio.to_thread(self.store.refresh_price_point, point)

        tasks = [asyncio.ensure_future(_refresh_one(point)) for point in stale]
        results = await asyncio.shield(asyncio.gather(*tasks, return_exceptions=True))

        for point, result in zip(stale, results):
            if isinstance(result, BaseException):
                report.failed.append((point.store, point.item_id))
                logger.warning(
                    "Could not refresh price of %s at %s, using stale value from %s: %s",
                    point.item_id, point.store, point.last_updated.isoformat(), result,
                )
            else:
                report.refreshed += 1

        logger.info(
            "Refresh finished: %d/%d refreshed, %d failed",
            report.refreshed, report.attempted, report.failed_count,
        )
        return report
