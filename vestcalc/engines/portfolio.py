"""Portfolio views over recorded grants.

Read-only aggregates: the current FMV per currency, a holdings summary per
grant and per currency, the equity tax figures for one year, and upcoming
vesting events.
"""

import logging
from datetime import date
from decimal import Decimal

from vestcalc.engines.brackets import DEFAULT_REPORTING_CURRENCY
from vestcalc.engines.currency import CurrencyAggregator
from vestcalc.engines.vesting import VestingScheduleGenerator
from vestcalc.exceptions import InvalidRateError
from vestcalc.models.currency import RateTable
from vestcalc.models.enums import VestingStatus
from vestcalc.models.equity import FMVEntry, GrantLedger, VestingEvent
from vestcalc.models.reports import (
    CurrencyHoldingSummary,
    CurrencyTaxData,
    EquityTaxSummary,
    GrantHoldingSummary,
    OptionsSummary,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def current_fmv(entries: list[FMVEntry], currency: str, as_of: date) -> FMVEntry | None:
    """Latest entry in ``currency`` effective on or before ``as_of``."""
    candidates = [e for e in entries if e.currency == currency and e.effective_date <= as_of]
    if not candidates:
        return None
    return max(candidates, key=lambda e: e.effective_date)


class PortfolioAnalyzer:
    """Holdings and per-year equity tax views across all grants."""

    def __init__(
        self,
        vesting: VestingScheduleGenerator | None = None,
        aggregator: CurrencyAggregator | None = None,
    ) -> None:
        self.vesting = vesting or VestingScheduleGenerator()
        self.aggregator = aggregator or CurrencyAggregator()

    def upcoming_vesting_events(
        self, ledgers: list[GrantLedger], as_of: date, days: int = 90
    ) -> list[VestingEvent]:
        return self.vesting.upcoming_events(ledgers, as_of, days)

    def _fmv_for(self, ledger: GrantLedger, entries: list[FMVEntry], as_of: date) -> Decimal:
        """FMV for the grant's currency, else the latest in any currency, else FMV at grant."""
        grant = ledger.grant
        entry = current_fmv(entries, grant.currency, as_of)
        if entry is not None:
            return entry.fmv_per_share

        dated = [e for e in entries if e.effective_date <= as_of]
        if dated:
            fallback = max(dated, key=lambda e: e.effective_date)
            logger.warning(
                "No %s FMV for grant %s; using latest %s FMV of %s",
                grant.currency,
                grant.id,
                fallback.currency,
                fallback.fmv_per_share,
            )
            return fallback.fmv_per_share

        logger.warning("No FMV recorded for grant %s; using FMV at grant", grant.id)
        return grant.fmv_at_grant

    def options_summary(
        self, ledgers: list[GrantLedger], fmv_entries: list[FMVEntry], as_of: date
    ) -> OptionsSummary:
        summary = OptionsSummary(as_of=as_of)

        for ledger in ledgers:
            grant = ledger.grant
            events = self.vesting.events_for_ledger(ledger, as_of)
            vested = unvested = forfeited = 0
            for event in events:
                if event.status == VestingStatus.VESTED:
                    vested += event.quantity
                elif event.status == VestingStatus.FORFEITED:
                    forfeited += event.quantity
                else:
                    unvested += event.quantity
            if not events:
                unvested = grant.quantity

            fmv = self._fmv_for(ledger, fmv_entries, as_of)
            vested_value = vested * fmv
            unvested_value = unvested * fmv
            exercised = ledger.exercised_quantity
            if grant.is_exercisable:
                spread = max(fmv - (grant.strike_price or ZERO), ZERO)
                intrinsic = max(vested - exercised, 0) * spread
            else:
                intrinsic = vested_value

            summary.grants.append(
                GrantHoldingSummary(
                    grant_id=grant.id,
                    grant_kind=grant.grant_kind,
                    currency=grant.currency,
                    total_shares=grant.quantity,
                    vested_shares=vested,
                    unvested_shares=unvested,
                    forfeited_shares=forfeited,
                    exercised_shares=exercised,
                    sold_shares=ledger.sold_quantity,
                    current_fmv=fmv,
                    vested_value=vested_value,
                    unvested_value=unvested_value,
                    intrinsic_value=intrinsic,
                )
            )

            summary.total_grants += 1
            summary.total_shares += grant.quantity
            summary.vested_shares += vested
            summary.unvested_shares += unvested
            summary.exercised_shares += exercised
            summary.sold_shares += ledger.sold_quantity
            kind = grant.grant_kind.value
            summary.by_grant_kind[kind] = summary.by_grant_kind.get(kind, 0) + 1

            bucket = summary.by_currency.setdefault(
                grant.currency, CurrencyHoldingSummary(currency=grant.currency)
            )
            bucket.current_fmv = fmv
            bucket.vested_shares += vested
            bucket.unvested_shares += unvested
            bucket.vested_value += vested_value
            bucket.unvested_value += unvested_value
            bucket.total_intrinsic_value += intrinsic

        logger.debug(
            "Options summary as of %s: %d grants, %d vested, %d unvested",
            as_of,
            summary.total_grants,
            summary.vested_shares,
            summary.unvested_shares,
        )
        return summary

    def equity_tax_summary(
        self,
        ledgers: list[GrantLedger],
        year: int,
        marginal_rate: Decimal,
        reporting_currency: str = DEFAULT_REPORTING_CURRENCY,
        rate_table: RateTable | None = None,
    ) -> EquityTaxSummary:
        """Exercises and sales dated in ``year``, per currency and combined."""
        if marginal_rate < ZERO or marginal_rate > Decimal("1"):
            raise InvalidRateError(marginal_rate)

        by_currency: dict[str, CurrencyTaxData] = {}

        def bucket(currency: str) -> CurrencyTaxData:
            return by_currency.setdefault(currency, CurrencyTaxData(currency=currency))

        for ledger in ledgers:
            for exercise in ledger.exercises:
                if exercise.exercise_date.year != year:
                    continue
                data = bucket(exercise.currency)
                data.total_taxable_benefit += exercise.taxable_benefit
                data.stock_option_deduction += exercise.stock_option_deduction
            for sale in ledger.sales:
                if sale.sale_date.year != year:
                    continue
                data = bucket(sale.currency)
                data.total_capital_gains += sale.capital_gain
                if sale.is_qualified:
                    data.qualified_gains += sale.capital_gain
                else:
                    data.non_qualified_gains += sale.capital_gain
                data.taxable_capital_gain += sale.taxable_capital_gain

        for data in by_currency.values():
            data.estimated_tax = self._estimated_tax(data, marginal_rate)

        combined = CurrencyTaxData(currency=reporting_currency)
        for name in (
            "total_taxable_benefit",
            "stock_option_deduction",
            "total_capital_gains",
            "qualified_gains",
            "non_qualified_gains",
            "taxable_capital_gain",
        ):
            buckets = {c: getattr(d, name) for c, d in by_currency.items()}
            setattr(
                combined,
                name,
                self.aggregator.aggregate_to_common(buckets, reporting_currency, rate_table),
            )
        combined.estimated_tax = self._estimated_tax(combined, marginal_rate)

        return EquityTaxSummary(
            year=year,
            marginal_rate=marginal_rate,
            reporting_currency=reporting_currency,
            combined=combined,
            by_currency=by_currency,
        )

    @staticmethod
    def _estimated_tax(data: CurrencyTaxData, marginal_rate: Decimal) -> Decimal:
        net_benefit = data.total_taxable_benefit - data.stock_option_deduction
        return (net_benefit + data.taxable_capital_gain) * marginal_rate
