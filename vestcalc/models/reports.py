"""Computed output models."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from vestcalc.models.enums import GrantKind


class BracketResult(BaseModel):
    tax: Decimal
    marginal_rate: Decimal


class IncomeByCategory(BaseModel):
    employment: Decimal = Decimal("0")
    investment: Decimal = Decimal("0")
    rental: Decimal = Decimal("0")
    business: Decimal = Decimal("0")
    other: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.employment + self.investment + self.rental + self.business + self.other


class TaxBreakdown(BaseModel):
    federal_tax: Decimal
    federal_credit: Decimal = Decimal("0")
    provincial_tax: Decimal
    cpp_contribution: Decimal
    ei_contribution: Decimal
    total_tax: Decimal
    effective_tax_rate: Decimal
    federal_marginal_rate: Decimal
    provincial_marginal_rate: Decimal
    marginal_tax_rate: Decimal


class AnnualSummary(BaseModel):
    tax_year: int
    region: str
    currency: str
    # Income
    income_by_category: IncomeByCategory
    total_gross_income: Decimal
    stock_option_benefit: Decimal
    stock_option_deduction: Decimal
    net_stock_option_benefit: Decimal
    total_capital_gains: Decimal
    taxable_capital_gains: Decimal
    capital_loss_carryforward: Decimal = Decimal("0")
    total_taxable_income: Decimal
    # Tax
    federal_tax: Decimal
    provincial_tax: Decimal
    cpp_contribution: Decimal
    ei_contribution: Decimal
    total_tax: Decimal
    net_income: Decimal
    effective_tax_rate: Decimal
    marginal_tax_rate: Decimal
    computed_at: datetime


class YearSummary(BaseModel):
    year: int
    total_gross_income: Decimal
    total_tax: Decimal
    net_income: Decimal
    effective_tax_rate: Decimal
    by_category: IncomeByCategory


class YearComparison(BaseModel):
    years: list[YearSummary]


class CurrencyTaxData(BaseModel):
    currency: str
    total_taxable_benefit: Decimal = Decimal("0")
    stock_option_deduction: Decimal = Decimal("0")
    total_capital_gains: Decimal = Decimal("0")
    qualified_gains: Decimal = Decimal("0")
    non_qualified_gains: Decimal = Decimal("0")
    taxable_capital_gain: Decimal = Decimal("0")
    estimated_tax: Decimal = Decimal("0")


class EquityTaxSummary(BaseModel):
    year: int
    marginal_rate: Decimal
    reporting_currency: str
    combined: CurrencyTaxData
    by_currency: dict[str, CurrencyTaxData]


class GrantHoldingSummary(BaseModel):
    grant_id: str
    grant_kind: GrantKind
    currency: str
    total_shares: int
    vested_shares: int
    unvested_shares: int
    forfeited_shares: int = 0
    exercised_shares: int = 0
    sold_shares: int = 0
    current_fmv: Decimal | None = None
    vested_value: Decimal = Decimal("0")
    unvested_value: Decimal = Decimal("0")
    intrinsic_value: Decimal = Decimal("0")


class CurrencyHoldingSummary(BaseModel):
    currency: str
    current_fmv: Decimal | None = None
    vested_shares: int = 0
    unvested_shares: int = 0
    vested_value: Decimal = Decimal("0")
    unvested_value: Decimal = Decimal("0")
    total_intrinsic_value: Decimal = Decimal("0")


class OptionsSummary(BaseModel):
    as_of: date
    total_grants: int = 0
    total_shares: int = 0
    vested_shares: int = 0
    unvested_shares: int = 0
    exercised_shares: int = 0
    sold_shares: int = 0
    by_grant_kind: dict[str, int] = {}
    by_currency: dict[str, CurrencyHoldingSummary] = {}
    grants: list[GrantHoldingSummary] = []


class ExerciseTaxEstimate(BaseModel):
    quantity: int
    strike_price: Decimal
    fmv_at_exercise: Decimal
    exercise_cost: Decimal
    taxable_benefit: Decimal
    stock_option_deduction: Decimal
    net_taxable: Decimal
    estimated_tax: Decimal


class SaleTaxEstimate(BaseModel):
    quantity: int
    sale_price: Decimal
    cost_basis: Decimal
    total_proceeds: Decimal
    capital_gain: Decimal
    holding_period_days: int
    taxable_gain: Decimal
    estimated_tax: Decimal


class BatchTaxEstimate(BaseModel):
    exercises: list[ExerciseTaxEstimate]
    sales: list[SaleTaxEstimate]
    total_exercise_tax: Decimal
    total_sale_tax: Decimal
    total_tax: Decimal


class ScenarioSummary(BaseModel):
    """Derived totals for one scenario, in the simulator's reporting currency."""

    model_config = ConfigDict(frozen=True)

    currency: str
    exercise_count: int = 0
    sale_count: int = 0
    total_exercise_cost: Decimal = Decimal("0")
    total_taxable_benefit: Decimal = Decimal("0")
    stock_option_deduction: Decimal = Decimal("0")
    net_taxable_benefit: Decimal = Decimal("0")
    total_proceeds: Decimal = Decimal("0")
    total_capital_gain: Decimal = Decimal("0")
    qualified_gains: Decimal = Decimal("0")
    non_qualified_gains: Decimal = Decimal("0")
    taxable_capital_gain: Decimal = Decimal("0")
    marginal_rate: Decimal = Decimal("0")
    estimated_tax: Decimal = Decimal("0")


class ScenarioColumn(BaseModel):
    scenario_id: str
    name: str
    summary: ScenarioSummary


class FieldComparison(BaseModel):
    """One summary field across scenarios; deltas are relative to the first scenario."""

    field: str
    values: list[Decimal]
    deltas: list[Decimal]


class ScenarioComparison(BaseModel):
    baseline_id: str
    scenarios: list[ScenarioColumn]
    fields: list[FieldComparison]
