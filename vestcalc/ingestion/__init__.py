"""Input loading for portfolio files."""

from vestcalc.ingestion.portfolio import (
    PortfolioInput,
    PortfolioLoader,
    ScenarioDefinition,
    ScenarioExercise,
    ScenarioSale,
)

__all__ = [
    "PortfolioInput",
    "PortfolioLoader",
    "ScenarioDefinition",
    "ScenarioExercise",
    "ScenarioSale",
]
