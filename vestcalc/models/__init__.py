"""Data models for vestcalc."""

from vestcalc.models.currency import RateTable
from vestcalc.models.enums import (
    CostBasisSource,
    ExerciseMethod,
    GrantKind,
    IncomeCategory,
    IncomeFrequency,
    ScheduleKind,
    VestingFrequency,
    VestingStatus,
)
from vestcalc.models.equity import (
    GRANT_KIND_RULES,
    Exercise,
    ExerciseRequest,
    FMVEntry,
    Grant,
    GrantKindRules,
    GrantLedger,
    OptionEligibility,
    Sale,
    SaleRequest,
    VestingEvent,
    VestingOverride,
    VestingSchedule,
)
from vestcalc.models.reports import (
    AnnualSummary,
    BatchTaxEstimate,
    BracketResult,
    CurrencyHoldingSummary,
    CurrencyTaxData,
    EquityTaxSummary,
    ExerciseTaxEstimate,
    FieldComparison,
    GrantHoldingSummary,
    IncomeByCategory,
    OptionsSummary,
    SaleTaxEstimate,
    ScenarioColumn,
    ScenarioComparison,
    ScenarioSummary,
    TaxBreakdown,
    YearComparison,
    YearSummary,
)
from vestcalc.models.tax_config import IncomeRecord, TaxBracket, TaxConfiguration, TaxParameters

__all__ = [
    "AnnualSummary",
    "BatchTaxEstimate",
    "BracketResult",
    "CostBasisSource",
    "CurrencyHoldingSummary",
    "CurrencyTaxData",
    "EquityTaxSummary",
    "Exercise",
    "ExerciseMethod",
    "ExerciseRequest",
    "ExerciseTaxEstimate",
    "FieldComparison",
    "FMVEntry",
    "Grant",
    "GRANT_KIND_RULES",
    "GrantHoldingSummary",
    "GrantKind",
    "GrantKindRules",
    "GrantLedger",
    "IncomeByCategory",
    "IncomeCategory",
    "IncomeFrequency",
    "IncomeRecord",
    "OptionEligibility",
    "OptionsSummary",
    "RateTable",
    "Sale",
    "SaleRequest",
    "SaleTaxEstimate",
    "ScenarioColumn",
    "ScenarioComparison",
    "ScenarioSummary",
    "ScheduleKind",
    "TaxBracket",
    "TaxBreakdown",
    "TaxConfiguration",
    "TaxParameters",
    "VestingEvent",
    "VestingFrequency",
    "VestingOverride",
    "VestingSchedule",
    "VestingStatus",
    "YearComparison",
    "YearSummary",
]
