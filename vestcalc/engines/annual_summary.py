"""Annual tax summary builder.

Combines income records with equity outcomes for one tax year:

  taxable income = taxable records (annualized)
                 + stock-option benefit net of the deduction
                 + taxable capital gains (50% inclusion, sign preserved)

Federal and provincial brackets are applied separately; the federal basic
personal amount credit is ``basic_personal_amount * lowest federal rate``
and federal tax never goes below zero. CPP and EI are charged on
employment income. A net allowable capital loss reduces taxable income
unless the builder is created with ``carry_forward_losses=True``, in which
case it is reported as a carry-forward and does not reduce other income.
"""

import logging
from datetime import datetime
from decimal import Decimal

from vestcalc.engines.brackets import default_tax_configuration
from vestcalc.engines.currency import CurrencyAggregator
from vestcalc.engines.progressive import TaxBracketEngine
from vestcalc.exceptions import ConfigurationError
from vestcalc.models.currency import RateTable
from vestcalc.models.enums import IncomeCategory
from vestcalc.models.equity import Exercise, Sale
from vestcalc.models.reports import (
    AnnualSummary,
    IncomeByCategory,
    TaxBreakdown,
    YearComparison,
    YearSummary,
)
from vestcalc.models.tax_config import IncomeRecord, TaxConfiguration

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class AnnualSummaryBuilder:
    """Builds per-year taxable income and tax owed."""

    def __init__(
        self,
        bracket_engine: TaxBracketEngine | None = None,
        aggregator: CurrencyAggregator | None = None,
        carry_forward_losses: bool = False,
    ) -> None:
        self.bracket_engine = bracket_engine or TaxBracketEngine()
        self.aggregator = aggregator or CurrencyAggregator()
        self.carry_forward_losses = carry_forward_losses

    def build_summary(
        self,
        income_records: list[IncomeRecord],
        config: TaxConfiguration,
        exercises: list[Exercise],
        sales: list[Sale],
        year: int,
        rate_table: RateTable | None = None,
    ) -> AnnualSummary:
        """Summarize one tax year.

        Records, exercises and sales outside ``year`` are ignored. Amounts in
        another currency are converted into ``config.currency``.
        """
        currency = config.currency
        by_category = IncomeByCategory()
        taxable_records = ZERO

        for record in income_records:
            if record.tax_year != year:
                continue
            amount = self.aggregator.convert(
                record.annual_amount, record.currency, currency, rate_table
            )
            field = record.category.value
            setattr(by_category, field, getattr(by_category, field) + amount)
            if record.is_taxable:
                taxable_records += amount

        benefit = ZERO
        deduction = ZERO
        for exercise in exercises:
            if exercise.exercise_date.year != year:
                continue
            benefit += self.aggregator.convert(
                exercise.taxable_benefit, exercise.currency, currency, rate_table
            )
            deduction += self.aggregator.convert(
                exercise.stock_option_deduction, exercise.currency, currency, rate_table
            )
        net_benefit = benefit - deduction

        capital_gains = ZERO
        taxable_gains = ZERO
        for sale in sales:
            if sale.sale_date.year != year:
                continue
            capital_gains += self.aggregator.convert(
                sale.capital_gain, sale.currency, currency, rate_table
            )
            taxable_gains += self.aggregator.convert(
                sale.taxable_capital_gain, sale.currency, currency, rate_table
            )

        carryforward = ZERO
        if self.carry_forward_losses and taxable_gains < ZERO:
            carryforward = -taxable_gains
            logger.info(
                "Net allowable capital loss of %s in %d carried forward", carryforward, year
            )
            taxable_gains = ZERO

        total_taxable = taxable_records + net_benefit + taxable_gains
        breakdown = self.compute_taxes(total_taxable, by_category.employment, config)

        summary = AnnualSummary(
            tax_year=year,
            region=config.region,
            currency=currency,
            income_by_category=by_category,
            total_gross_income=by_category.total,
            stock_option_benefit=benefit,
            stock_option_deduction=deduction,
            net_stock_option_benefit=net_benefit,
            total_capital_gains=capital_gains,
            taxable_capital_gains=taxable_gains,
            capital_loss_carryforward=carryforward,
            total_taxable_income=total_taxable,
            federal_tax=breakdown.federal_tax,
            provincial_tax=breakdown.provincial_tax,
            cpp_contribution=breakdown.cpp_contribution,
            ei_contribution=breakdown.ei_contribution,
            total_tax=breakdown.total_tax,
            net_income=total_taxable - breakdown.total_tax,
            effective_tax_rate=breakdown.effective_tax_rate,
            marginal_tax_rate=breakdown.marginal_tax_rate,
            computed_at=datetime.now(),
        )
        logger.debug(
            "Summary %d: taxable=%s total_tax=%s effective=%s",
            year,
            summary.total_taxable_income,
            summary.total_tax,
            summary.effective_tax_rate,
        )
        return summary

    def compute_taxes(
        self, taxable_income: Decimal, employment_income: Decimal, config: TaxConfiguration
    ) -> TaxBreakdown:
        params = config.parameters

        federal = self.bracket_engine.apply_brackets(
            taxable_income, config.federal_brackets, "federal_brackets"
        )
        provincial = self.bracket_engine.apply_brackets(
            taxable_income, config.provincial_brackets, "provincial_brackets"
        )

        lowest_rate = config.federal_brackets[0].rate
        credit = params.basic_personal_amount * lowest_rate
        federal_tax = max(federal.tax - credit, ZERO)

        cpp = self.bracket_engine.apply_payroll_contribution(
            employment_income,
            params.cpp_rate,
            params.cpp_basic_exemption,
            params.cpp_max_pensionable_earnings,
        )
        ei = self.bracket_engine.apply_payroll_contribution(
            employment_income, params.ei_rate, ZERO, params.ei_max_insurable_earnings
        )

        total_tax = federal_tax + provincial.tax + cpp + ei
        effective = total_tax / taxable_income if taxable_income > ZERO else ZERO

        return TaxBreakdown(
            federal_tax=federal_tax,
            federal_credit=credit,
            provincial_tax=provincial.tax,
            cpp_contribution=cpp,
            ei_contribution=ei,
            total_tax=total_tax,
            effective_tax_rate=effective,
            federal_marginal_rate=federal.marginal_rate,
            provincial_marginal_rate=provincial.marginal_rate,
            marginal_tax_rate=federal.marginal_rate + provincial.marginal_rate,
        )

    def compare_years(
        self,
        income_records: list[IncomeRecord],
        configs: dict[int, TaxConfiguration],
        exercises: list[Exercise],
        sales: list[Sale],
        start_year: int,
        end_year: int,
        rate_table: RateTable | None = None,
    ) -> YearComparison:
        """Per-year gross income, tax and rates over an inclusive range.

        Years with no supplied configuration use the built-in tables; years
        with neither are skipped. Gross income here includes the gross
        stock-option benefit, reported under the ``other`` category.
        """
        if start_year > end_year:
            start_year, end_year = end_year, start_year

        years: list[YearSummary] = []
        for year in range(start_year, end_year + 1):
            config = configs.get(year)
            if config is None:
                try:
                    config = default_tax_configuration(year)
                except ConfigurationError as e:
                    logger.warning("Skipping %d in comparison: %s", year, e)
                    continue

            summary = self.build_summary(
                income_records, config, exercises, sales, year, rate_table
            )
            by_category = summary.income_by_category.model_copy()
            by_category.other += summary.stock_option_benefit
            years.append(
                YearSummary(
                    year=year,
                    total_gross_income=summary.total_gross_income + summary.stock_option_benefit,
                    total_tax=summary.total_tax,
                    net_income=summary.net_income,
                    effective_tax_rate=summary.effective_tax_rate,
                    by_category=by_category,
                )
            )
        return YearComparison(years=years)
