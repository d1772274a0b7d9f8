"""Report generation for vestcalc."""

from vestcalc.reports.annual_summary import AnnualSummaryGenerator
from vestcalc.reports.scenario_comparison import ScenarioComparisonGenerator
from vestcalc.reports.vesting_schedule import VestingReportGenerator

__all__ = [
    "AnnualSummaryGenerator",
    "ScenarioComparisonGenerator",
    "VestingReportGenerator",
]
