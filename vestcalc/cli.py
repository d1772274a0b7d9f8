"""Typer CLI interface for vestcalc."""

import logging
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import typer

from vestcalc.exceptions import TaxComputationError

app = typer.Typer(
    name="vestcalc",
    help="vestcalc: vesting schedules and Canadian tax projections for equity compensation.",
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log computed figures"),
) -> None:
    """vestcalc: vesting schedules and Canadian tax projections for equity compensation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _load(file: Path):
    from vestcalc.ingestion import PortfolioLoader

    loader = PortfolioLoader()
    try:
        portfolio = loader.load(file)
    except FileNotFoundError:
        _fail(f"File not found: {file}")
    except TaxComputationError as exc:
        _fail(str(exc))
    for warning in loader.validate(portfolio):
        typer.echo(f"Warning: {warning}", err=True)
    return portfolio


def _parse_date(value: str | None) -> date:
    if value is None:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        _fail(f"Invalid date '{value}'. Use YYYY-MM-DD.")


@app.command()
def vesting(
    file: Path = typer.Argument(..., help="Portfolio JSON file"),
    as_of: str | None = typer.Option(None, "--as-of", help="Status date (YYYY-MM-DD), default today"),
    grant: str | None = typer.Option(None, "--grant", "-g", help="Only show this grant id"),
) -> None:
    """Print vesting schedules with vested/pending status."""
    from vestcalc.engines import VestingScheduleGenerator
    from vestcalc.reports import VestingReportGenerator

    portfolio = _load(file)
    at = _parse_date(as_of)

    ledgers = portfolio.ledgers
    if grant is not None:
        ledger = portfolio.ledger(grant)
        if ledger is None:
            _fail(f"Grant not found: {grant}")
        ledgers = [ledger]

    generator = VestingScheduleGenerator()
    try:
        schedules = [(ledger, generator.events_for_ledger(ledger, at)) for ledger in ledgers]
    except TaxComputationError as exc:
        _fail(str(exc))

    typer.echo(VestingReportGenerator().render(schedules, at))


@app.command()
def summary(
    file: Path = typer.Argument(..., help="Portfolio JSON file"),
    year: int = typer.Argument(..., help="Tax year to summarize"),
) -> None:
    """Compute the annual tax summary for a tax year."""
    from vestcalc.engines import AnnualSummaryBuilder
    from vestcalc.reports import AnnualSummaryGenerator

    portfolio = _load(file)
    try:
        result = AnnualSummaryBuilder().build_summary(
            portfolio.income_records,
            portfolio.tax_configuration(year),
            portfolio.exercises,
            portfolio.sales,
            year,
            portfolio.rate_table,
        )
    except TaxComputationError as exc:
        _fail(str(exc))

    typer.echo(AnnualSummaryGenerator().render(result))


@app.command()
def equity(
    file: Path = typer.Argument(..., help="Portfolio JSON file"),
    year: int = typer.Argument(..., help="Tax year of exercises and sales"),
    rate: float | None = typer.Option(
        None,
        "--rate",
        "-r",
        help="Marginal rate (0-1). Default: the year's annual summary, else 0.50",
    ),
    currency: str = typer.Option("CAD", "--currency", "-c", help="Reporting currency"),
) -> None:
    """Summarize exercise benefits and capital gains for a tax year."""
    from vestcalc.engines import AnnualSummaryBuilder, PortfolioAnalyzer
    from vestcalc.engines.brackets import DEFAULT_MARGINAL_RATE
    from vestcalc.reports import AnnualSummaryGenerator

    portfolio = _load(file)
    try:
        if rate is not None:
            marginal_rate = Decimal(str(rate))
        elif portfolio.income_records:
            baseline = AnnualSummaryBuilder().build_summary(
                portfolio.income_records,
                portfolio.tax_configuration(year),
                portfolio.exercises,
                portfolio.sales,
                year,
                portfolio.rate_table,
            )
            marginal_rate = baseline.marginal_tax_rate
        else:
            marginal_rate = DEFAULT_MARGINAL_RATE

        result = PortfolioAnalyzer().equity_tax_summary(
            portfolio.ledgers, year, marginal_rate, currency, portfolio.rate_table
        )
    except TaxComputationError as exc:
        _fail(str(exc))

    typer.echo(AnnualSummaryGenerator().render_equity(result))


@app.command()
def compare(
    file: Path = typer.Argument(..., help="Portfolio JSON file with a 'scenarios' list"),
    year: int | None = typer.Option(
        None, "--year", "-y", help="Use this year's annual summary for the default marginal rate"
    ),
    currency: str = typer.Option("CAD", "--currency", "-c", help="Reporting currency"),
) -> None:
    """Build the scenarios declared in the file and compare them side by side."""
    from vestcalc.engines import AnnualSummaryBuilder, ScenarioSimulator
    from vestcalc.reports import ScenarioComparisonGenerator

    portfolio = _load(file)
    if len(portfolio.scenarios) < 2:
        _fail(f"At least 2 scenarios are needed to compare, found {len(portfolio.scenarios)}")

    try:
        baseline = None
        if year is not None:
            baseline = AnnualSummaryBuilder().build_summary(
                portfolio.income_records,
                portfolio.tax_configuration(year),
                portfolio.exercises,
                portfolio.sales,
                year,
                portfolio.rate_table,
            )

        simulator = ScenarioSimulator(
            portfolio.ledgers,
            rate_table=portfolio.rate_table,
            reporting_currency=currency,
            baseline=baseline,
        )
        ids = []
        for definition in portfolio.scenarios:
            scenario = simulator.create(definition.name, definition.description)
            if definition.marginal_rate is not None:
                simulator.set_marginal_rate(scenario.id, definition.marginal_rate)
            for request in definition.exercises:
                simulator.add_exercise(scenario.id, request.grant_id, request)
            for request in definition.sales:
                simulator.add_sale(scenario.id, request, request.grant_id, request.currency)
            ids.append(scenario.id)

        comparison = simulator.compare(ids)
    except TaxComputationError as exc:
        _fail(str(exc))

    typer.echo(ScenarioComparisonGenerator().render(comparison))
