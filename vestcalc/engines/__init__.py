"""Vesting and tax computation engines."""

from vestcalc.engines.accountant import ExerciseSaleAccountant
from vestcalc.engines.annual_summary import AnnualSummaryBuilder
from vestcalc.engines.currency import CurrencyAggregator
from vestcalc.engines.portfolio import PortfolioAnalyzer, current_fmv
from vestcalc.engines.progressive import TaxBracketEngine
from vestcalc.engines.scenarios import ScenarioSimulator, TaxScenario
from vestcalc.engines.vesting import VestingScheduleGenerator

__all__ = [
    "AnnualSummaryBuilder",
    "CurrencyAggregator",
    "ExerciseSaleAccountant",
    "PortfolioAnalyzer",
    "ScenarioSimulator",
    "TaxBracketEngine",
    "TaxScenario",
    "VestingScheduleGenerator",
    "current_fmv",
]
