"""Configuration management for the comparison engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(_PROJECT_ROOT / ".env")


@dataclass
class Config:
    """Central configuration loaded from environment variables."""

    # Database
    database_path: str = field(
        default_factory=lambda: os.getenv(
            "CARTWISE_DATABASE_PATH", "data/cartwise.db"
        )
    )

    # Comparison
    stale_after_days: int = 14
    availability_threshold: float = 0.85
    refresh_concurrency: int = 8
    currency: str = "USD"

    def __post_init__(self) -> None:
        """Load overrides from environment, then validate."""
        if days := os.getenv("CARTWISE_STALE_AFTER_DAYS"):
            self.stale_after_days = int(days)
        if threshold := os.getenv("CARTWISE_AVAILABILITY_THRESHOLD"):
            self.availability_threshold = float(threshold)
        if concurrency := os.getenv("CARTWISE_REFRESH_CONCURRENCY"):
            self.refresh_concurrency = int(concurrency)
        if currency := os.getenv("CARTWISE_CURRENCY"):
            self.currency = currency
        self.currency = self.currency.strip().upper()

        if not 0.0 < self.availability_threshold <= 1.0:
            raise ValueError(
                f"availability_threshold must be in (0, 1], got {self.availability_threshold}"
            )
        if self.stale_after_days <= 0:
            raise ValueError("stale_after_days must be positive")
        if self.refresh_concurrency <= 0:
            raise ValueError("refresh_concurrency must be positive")
        if not self.currency:
            raise ValueError("currency must not be empty")

    @property
    def stale_after(self) -> timedelta:
        return timedelta(days=self.stale_after_days)

    @property
    def database_abs_path(self) -> Path:
        """Resolve database path relative to project root."""
        p = Path(self.database_path)
        if p.is_absolute():
            return p
        return _PROJECT_ROOT / p
