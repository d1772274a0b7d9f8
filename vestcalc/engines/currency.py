"""Multi-currency conversion and aggregation.

Rates are supplied by the caller; nothing here fetches or caches them. A
missing pair is always an error: conversions between different currencies
never fall back to a 1:1 rate.
"""

import logging
from decimal import Decimal

from vestcalc.exceptions import MissingExchangeRateError
from vestcalc.models.currency import RateTable

logger = logging.getLogger(__name__)


class CurrencyAggregator:
    """Converts amounts and sums per-currency buckets into one currency."""

    def __init__(self, rate_table: RateTable | None = None) -> None:
        self.rate_table = rate_table or RateTable()

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        rate_table: RateTable | None = None,
    ) -> Decimal:
        if from_currency == to_currency:
            return amount
        table = rate_table or self.rate_table
        rate = table.lookup(from_currency, to_currency)
        if rate is None:
            raise MissingExchangeRateError(from_currency, to_currency)
        return amount * rate

    def aggregate_to_common(
        self,
        buckets: dict[str, Decimal],
        to_currency: str,
        rate_table: RateTable | None = None,
    ) -> Decimal:
        """Sum amounts keyed by currency after converting each to ``to_currency``."""
        total = Decimal("0")
        for currency, amount in buckets.items():
            total += self.convert(amount, currency, to_currency, rate_table)
        logger.debug(
            "Aggregated %d currency bucket(s) into %s: %s", len(buckets), to_currency, total
        )
        return total
