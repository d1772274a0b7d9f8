"""Tests for the annual tax summary builder.

Worked figures for 100,000 CAD of employment income, 2024 Ontario:
  Federal:    55867 * 15% + 44133 * 20.5% = 17427.315
              - basic personal amount credit 15705 * 15% = 2355.75
              = 15071.565
  Ontario:    51446 * 5.05% + 48554 * 9.15% = 7040.714
  CPP:        (68500 - 3500) * 5.95% = 3867.50
  EI:         63200 * 1.63% = 1030.16
  Total tax:  27009.939
"""

from datetime import date
from decimal import Decimal

import pytest

from vestcalc.engines.annual_summary import AnnualSummaryBuilder
from vestcalc.exceptions import MissingExchangeRateError
from vestcalc.models.enums import IncomeCategory, IncomeFrequency
from vestcalc.models.equity import Exercise, Sale
from vestcalc.models.tax_config import IncomeRecord


@pytest.fixture
def builder():
    return AnnualSummaryBuilder()


def _income(amount, category=IncomeCategory.EMPLOYMENT, year=2024, **kwargs) -> IncomeRecord:
    return IncomeRecord(category=category, amount=Decimal(amount), tax_year=year, **kwargs)


def _exercise(on=date(2024, 6, 1), currency="USD") -> Exercise:
    return Exercise(
        id="ex-1",
        grant_id="g-1",
        currency=currency,
        exercise_date=on,
        quantity=1000,
        strike_price=Decimal("10"),
        fmv_at_exercise=Decimal("25"),
        exercise_cost=Decimal("10000"),
        taxable_benefit=Decimal("15000"),
        stock_option_deduction=Decimal("7500"),
    )


def _sale(gain, on=date(2024, 9, 1), currency="CAD") -> Sale:
    gain = Decimal(gain)
    return Sale(
        id="s-1",
        currency=currency,
        sale_date=on,
        acquisition_date=date(2024, 1, 1),
        quantity=100,
        sale_price=Decimal("1"),
        cost_basis_per_share=Decimal("1"),
        proceeds=Decimal("10000"),
        cost_basis=Decimal("10000") - gain,
        capital_gain=gain,
        taxable_capital_gain=gain * Decimal("0.5"),
        holding_period_days=244,
        is_qualified=False,
    )


class TestEmploymentOnly:
    """100,000 CAD employment income, 2024 Ontario."""

    def test_income(self, builder, config_2024):
        s = builder.build_summary([_income("100000")], config_2024, [], [], 2024)
        assert s.total_gross_income == Decimal("100000")
        assert s.total_taxable_income == Decimal("100000")
        assert s.income_by_category.employment == Decimal("100000")

    def test_federal_tax_after_credit(self, builder, config_2024):
        s = builder.build_summary([_income("100000")], config_2024, [], [], 2024)
        assert s.federal_tax == Decimal("15071.565")

    def test_provincial_tax(self, builder, config_2024):
        s = builder.build_summary([_income("100000")], config_2024, [], [], 2024)
        assert s.provincial_tax == Decimal("7040.714")

    def test_payroll(self, builder, config_2024):
        s = builder.build_summary([_income("100000")], config_2024, [], [], 2024)
        assert s.cpp_contribution == Decimal("3867.50")
        assert s.ei_contribution == Decimal("1030.16")

    def test_totals_and_rates(self, builder, config_2024):
        s = builder.build_summary([_income("100000")], config_2024, [], [], 2024)
        assert s.total_tax == Decimal("27009.939")
        assert s.net_income == Decimal("72990.061")
        assert s.effective_tax_rate == Decimal("0.27009939")
        assert s.marginal_tax_rate == Decimal("0.2965")


class TestIncomeRecords:
    def test_monthly_frequency_is_annualized(self, builder, config_2024):
        s = builder.build_summary(
            [_income("5000", frequency=IncomeFrequency.MONTHLY)], config_2024, [], [], 2024
        )
        assert s.income_by_category.employment == Decimal("60000")

    def test_bi_weekly_frequency(self, builder, config_2024):
        s = builder.build_summary(
            [_income("1000", category=IncomeCategory.BUSINESS, frequency=IncomeFrequency.BI_WEEKLY)],
            config_2024,
            [],
            [],
            2024,
        )
        assert s.income_by_category.business == Decimal("26000")

    def test_non_taxable_counts_toward_gross_only(self, builder, config_2024):
        records = [
            _income("50000"),
            _income("10000", category=IncomeCategory.OTHER, is_taxable=False),
        ]
        s = builder.build_summary(records, config_2024, [], [], 2024)
        assert s.total_gross_income == Decimal("60000")
        assert s.total_taxable_income == Decimal("50000")

    def test_other_years_ignored(self, builder, config_2024):
        s = builder.build_summary(
            [_income("50000"), _income("70000", year=2023)], config_2024, [], [], 2024
        )
        assert s.total_gross_income == Decimal("50000")

    def test_foreign_income_converted(self, builder, config_2024, usd_cad_rates):
        s = builder.build_summary(
            [_income("1000", category=IncomeCategory.INVESTMENT, currency="USD")],
            config_2024,
            [],
            [],
            2024,
            usd_cad_rates,
        )
        assert s.income_by_category.investment == Decimal("1350.00")

    def test_foreign_income_without_rate(self, builder, config_2024):
        with pytest.raises(MissingExchangeRateError):
            builder.build_summary([_income("1000", currency="EUR")], config_2024, [], [], 2024)

    def test_credit_cannot_make_federal_tax_negative(self, builder, config_2024):
        s = builder.build_summary([_income("10000")], config_2024, [], [], 2024)
        assert s.federal_tax == Decimal("0")

    def test_no_income(self, builder, config_2024):
        s = builder.build_summary([], config_2024, [], [], 2024)
        assert s.total_tax == Decimal("0")
        assert s.effective_tax_rate == Decimal("0")


class TestEquityIncome:
    def test_option_benefit_net_of_deduction(self, builder, config_2024, usd_cad_rates):
        """15000 USD benefit, 7500 deduction, at 1.35: 20250 - 10125 = 10125 CAD taxable."""
        s = builder.build_summary(
            [_income("100000")], config_2024, [_exercise()], [], 2024, usd_cad_rates
        )
        assert s.stock_option_benefit == Decimal("20250.00")
        assert s.stock_option_deduction == Decimal("10125.00")
        assert s.net_stock_option_benefit == Decimal("10125.00")
        assert s.total_taxable_income == Decimal("110125.00")
        assert s.total_gross_income == Decimal("100000")

    def test_exercise_in_other_year_ignored(self, builder, config_2024, usd_cad_rates):
        s = builder.build_summary(
            [], config_2024, [_exercise(on=date(2025, 1, 1))], [], 2024, usd_cad_rates
        )
        assert s.stock_option_benefit == Decimal("0")

    def test_capital_gain_half_included(self, builder, config_2024):
        s = builder.build_summary([_income("50000")], config_2024, [], [_sale("8000")], 2024)
        assert s.total_capital_gains == Decimal("8000")
        assert s.taxable_capital_gains == Decimal("4000")
        assert s.total_taxable_income == Decimal("54000")

    def test_allowable_loss_reduces_taxable_income(self, builder, config_2024):
        """100,000 income - 10,000 loss * 50% = 95,000 taxable."""
        s = builder.build_summary([_income("100000")], config_2024, [], [_sale("-10000")], 2024)
        assert s.total_capital_gains == Decimal("-10000")
        assert s.taxable_capital_gains == Decimal("-5000")
        assert s.capital_loss_carryforward == Decimal("0")
        assert s.total_taxable_income == Decimal("95000")

    def test_loss_larger_than_income_owes_no_bracket_tax(self, builder, config_2024):
        s = builder.build_summary([], config_2024, [], [_sale("-10000")], 2024)
        assert s.total_taxable_income == Decimal("-5000")
        assert s.total_tax == Decimal("0")
        assert s.effective_tax_rate == Decimal("0")

    def test_capital_loss_carried_forward_when_enabled(self, config_2024):
        builder = AnnualSummaryBuilder(carry_forward_losses=True)
        s = builder.build_summary([_income("50000")], config_2024, [], [_sale("-10000")], 2024)
        assert s.taxable_capital_gains == Decimal("0")
        assert s.capital_loss_carryforward == Decimal("5000")
        assert s.total_taxable_income == Decimal("50000")

    def test_loss_offsets_gains_first(self, config_2024):
        """8,000 gain - 2,000 loss = 6,000 net, 3,000 included; nothing to carry."""
        builder = AnnualSummaryBuilder(carry_forward_losses=True)
        sales = [_sale("8000"), _sale("-2000")]
        s = builder.build_summary([], config_2024, [], sales, 2024)
        assert s.taxable_capital_gains == Decimal("3000")
        assert s.capital_loss_carryforward == Decimal("0")

    def test_equity_does_not_change_payroll(self, builder, config_2024, usd_cad_rates):
        base = builder.build_summary([_income("40000")], config_2024, [], [], 2024)
        with_equity = builder.build_summary(
            [_income("40000")], config_2024, [_exercise()], [], 2024, usd_cad_rates
        )
        assert with_equity.cpp_contribution == base.cpp_contribution
        assert with_equity.ei_contribution == base.ei_contribution


class TestCompareYears:
    def test_reversed_range_is_swapped(self, builder):
        records = [_income("80000", year=2024), _income("90000", year=2025)]
        result = builder.compare_years(records, {}, [], [], 2025, 2024)
        assert [y.year for y in result.years] == [2024, 2025]
        assert result.years[1].total_gross_income == Decimal("90000")

    def test_years_without_tables_are_skipped(self, builder):
        result = builder.compare_years([_income("80000")], {}, [], [], 2023, 2024)
        assert [y.year for y in result.years] == [2024]

    def test_supplied_configuration_is_used(self, builder, config_2024):
        configs = {2022: config_2024.model_copy(update={"tax_year": 2022})}
        result = builder.compare_years([_income("80000", year=2022)], configs, [], [], 2022, 2022)
        assert [y.year for y in result.years] == [2022]
        assert result.years[0].total_tax > Decimal("0")

    def test_option_benefit_reported_as_other(self, builder, config_2024, usd_cad_rates):
        result = builder.compare_years(
            [_income("80000")], {2024: config_2024}, [_exercise()], [], 2024, 2024, usd_cad_rates
        )
        year = result.years[0]
        assert year.total_gross_income == Decimal("100250.00")
        assert year.by_category.other == Decimal("20250.00")
        assert year.by_category.employment == Decimal("80000")
