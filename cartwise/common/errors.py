"""Exceptions raised by the comparison pipeline."""

from __future__ import annotations


class ComparisonError(Exception):
    """A comparison could not be produced."""


class RepositoryError(ComparisonError):
    """The underlying price store could not be read or written.

    Not retried by the engine; the caller decides whether to try again.
    """


class CurrencyMismatchError(ComparisonError):
    """Price points in one snapshot use more than one currency."""

    def __init__(self, currencies: set[str]) -> None:
        self.currencies = currencies
        super().__init__(
            f"Cannot compare prices in mixed currencies: {', '.join(sorted(currencies))}"
        )
