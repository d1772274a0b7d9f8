"""Tests for portfolio views: current FMV, holdings and per-year equity tax."""

from datetime import date
from decimal import Decimal

import pytest

from vestcalc.engines.accountant import ExerciseSaleAccountant
from vestcalc.engines.portfolio import PortfolioAnalyzer, current_fmv
from vestcalc.exceptions import InvalidRateError, MissingExchangeRateError
from vestcalc.models.enums import GrantKind
from vestcalc.models.equity import ExerciseRequest, FMVEntry, Grant, GrantLedger, SaleRequest


@pytest.fixture
def analyzer():
    return PortfolioAnalyzer()


@pytest.fixture
def fmv_history():
    return [
        FMVEntry(currency="USD", effective_date=date(2024, 6, 1), fmv_per_share=Decimal("20")),
        FMVEntry(currency="USD", effective_date=date(2025, 1, 1), fmv_per_share=Decimal("25")),
        FMVEntry(currency="USD", effective_date=date(2026, 1, 1), fmv_per_share=Decimal("30")),
        FMVEntry(currency="CAD", effective_date=date(2025, 3, 1), fmv_per_share=Decimal("33")),
    ]


@pytest.fixture
def traded_ledger(iso_ledger):
    """1000 exercised 2025-01-15 at FMV 25; 500 sold 2025-06-01 at 30."""
    accountant = ExerciseSaleAccountant()
    iso_ledger.exercises.append(
        accountant.record_exercise(
            iso_ledger,
            ExerciseRequest(
                id="ex-1",
                exercise_date=date(2025, 1, 15),
                quantity=1000,
                fmv_at_exercise=Decimal("25"),
            ),
        )
    )
    iso_ledger.sales.append(
        accountant.record_sale(
            SaleRequest(
                sale_date=date(2025, 6, 1),
                quantity=500,
                sale_price=Decimal("30"),
                cost_basis_per_share=Decimal("10"),
                exercise_id="ex-1",
            ),
            iso_ledger,
        )
    )
    return iso_ledger


class TestCurrentFMV:
    def test_latest_on_or_before(self, fmv_history):
        entry = current_fmv(fmv_history, "USD", date(2025, 6, 1))
        assert entry.fmv_per_share == Decimal("25")

    def test_effective_on_as_of(self, fmv_history):
        assert current_fmv(fmv_history, "USD", date(2026, 1, 1)).fmv_per_share == Decimal("30")

    def test_none_before_first_entry(self, fmv_history):
        assert current_fmv(fmv_history, "USD", date(2024, 1, 1)) is None

    def test_other_currency_ignored(self, fmv_history):
        assert current_fmv(fmv_history, "EUR", date(2026, 1, 1)) is None


class TestOptionsSummary:
    def test_option_holdings(self, analyzer, iso_ledger, fmv_history):
        """3540 vested by 2025-06-15 at FMV 25; spread 15."""
        summary = analyzer.options_summary([iso_ledger], fmv_history, date(2025, 6, 15))
        grant = summary.grants[0]
        assert grant.vested_shares == 3540
        assert grant.unvested_shares == 6460
        assert grant.current_fmv == Decimal("25")
        assert grant.vested_value == Decimal("88500")
        assert grant.unvested_value == Decimal("161500")
        assert grant.intrinsic_value == Decimal("53100")

    def test_exercised_shares_reduce_intrinsic_value(self, analyzer, traded_ledger, fmv_history):
        """(3540 - 1000) * 15 = 38100."""
        summary = analyzer.options_summary([traded_ledger], fmv_history, date(2025, 6, 15))
        grant = summary.grants[0]
        assert grant.exercised_shares == 1000
        assert grant.sold_shares == 500
        assert grant.intrinsic_value == Decimal("38100")

    def test_rsu_intrinsic_is_vested_value(self, analyzer, rsu_ledger, fmv_history):
        """1000 cliff + 250 on 2024-04-01, at FMV 20."""
        summary = analyzer.options_summary([rsu_ledger], fmv_history, date(2024, 6, 15))
        grant = summary.grants[0]
        assert grant.vested_shares == 1250
        assert grant.intrinsic_value == grant.vested_value == Decimal("25000")

    def test_falls_back_to_other_currency(self, analyzer, iso_grant, monthly_schedule):
        entries = [
            FMVEntry(currency="CAD", effective_date=date(2025, 3, 1), fmv_per_share=Decimal("33"))
        ]
        ledger = GrantLedger(grant=iso_grant, schedule=monthly_schedule)
        summary = analyzer.options_summary([ledger], entries, date(2025, 6, 15))
        assert summary.grants[0].current_fmv == Decimal("33")

    def test_falls_back_to_fmv_at_grant(self, analyzer, iso_ledger):
        summary = analyzer.options_summary([iso_ledger], [], date(2025, 6, 15))
        assert summary.grants[0].current_fmv == Decimal("10.00")
        assert summary.grants[0].intrinsic_value == Decimal("0")

    def test_grant_without_events_is_all_unvested(self, analyzer, iso_grant):
        summary = analyzer.options_summary([GrantLedger(grant=iso_grant)], [], date(2025, 6, 15))
        assert summary.grants[0].vested_shares == 0
        assert summary.grants[0].unvested_shares == 10000

    def test_totals_and_buckets(self, analyzer, iso_ledger, rsu_ledger, fmv_history):
        cad_grant = Grant(
            id="grant-nso-cad",
            grant_kind=GrantKind.NSO,
            quantity=100,
            strike_price=Decimal("5"),
            fmv_at_grant=Decimal("5"),
            currency="CAD",
            grant_date=date(2025, 1, 1),
        )
        ledgers = [iso_ledger, rsu_ledger, GrantLedger(grant=cad_grant)]
        summary = analyzer.options_summary(ledgers, fmv_history, date(2025, 6, 15))
        assert summary.total_grants == 3
        assert summary.total_shares == 14100
        assert summary.by_grant_kind == {"ISO": 1, "RSU": 1, "NSO": 1}
        assert set(summary.by_currency) == {"USD", "CAD"}
        assert summary.by_currency["CAD"].unvested_shares == 100
        assert summary.by_currency["CAD"].current_fmv == Decimal("33")
        assert summary.vested_shares == summary.by_currency["USD"].vested_shares


class TestEquityTaxSummary:
    def test_per_currency(self, analyzer, traded_ledger):
        """Benefit 15000, deduction 7500, gain 10000 (taxable 5000): (7500 + 5000) * 50%."""
        result = analyzer.equity_tax_summary(
            [traded_ledger], 2025, Decimal("0.50"), "USD"
        )
        usd = result.by_currency["USD"]
        assert usd.total_taxable_benefit == Decimal("15000")
        assert usd.stock_option_deduction == Decimal("7500")
        assert usd.total_capital_gains == Decimal("10000")
        assert usd.non_qualified_gains == Decimal("10000")
        assert usd.qualified_gains == Decimal("0")
        assert usd.taxable_capital_gain == Decimal("5000")
        assert usd.estimated_tax == Decimal("6250")
        assert result.combined.estimated_tax == Decimal("6250")

    def test_combined_in_reporting_currency(self, analyzer, traded_ledger, usd_cad_rates):
        """(20250 - 10125 + 6750) * 50% = 8437.50 CAD."""
        result = analyzer.equity_tax_summary(
            [traded_ledger], 2025, Decimal("0.50"), "CAD", usd_cad_rates
        )
        assert result.combined.currency == "CAD"
        assert result.combined.total_taxable_benefit == Decimal("20250")
        assert result.combined.taxable_capital_gain == Decimal("6750")
        assert result.combined.estimated_tax == Decimal("8437.50")

    def test_other_year_is_empty(self, analyzer, traded_ledger):
        result = analyzer.equity_tax_summary([traded_ledger], 2024, Decimal("0.50"))
        assert result.by_currency == {}
        assert result.combined.estimated_tax == Decimal("0")

    def test_missing_rate(self, analyzer, traded_ledger):
        with pytest.raises(MissingExchangeRateError):
            analyzer.equity_tax_summary([traded_ledger], 2025, Decimal("0.50"), "CAD")

    def test_rate_out_of_range(self, analyzer, traded_ledger):
        with pytest.raises(InvalidRateError):
            analyzer.equity_tax_summary([traded_ledger], 2025, Decimal("1.5"))


class TestUpcomingVesting:
    def test_within_window(self, analyzer, iso_ledger, rsu_ledger):
        upcoming = analyzer.upcoming_vesting_events(
            [iso_ledger, rsu_ledger], date(2025, 6, 15), days=30
        )
        assert [(e.grant_id, e.vest_date) for e in upcoming] == [
            ("grant-iso-001", date(2025, 7, 1)),
            ("grant-rsu-001", date(2025, 7, 1)),
        ]
