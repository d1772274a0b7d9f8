"""JSON portfolio loader.

Reads one JSON document describing grants, their vesting schedules and
recorded exercises and sales, FMV history, income records, exchange rates,
tax configuration and optional what-if scenarios. Exercises and sales are
replayed through the accountant in date order, so the loaded ledgers carry
computed figures and every record is validated against vesting.
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ValidationError

from vestcalc.engines.accountant import ExerciseSaleAccountant
from vestcalc.engines.brackets import DEFAULT_REGION, default_tax_configuration
from vestcalc.exceptions import DataValidationError
from vestcalc.models.currency import RateTable
from vestcalc.models.enums import ScheduleKind
from vestcalc.models.equity import (
    ExerciseRequest,
    FMVEntry,
    Grant,
    GrantLedger,
    SaleRequest,
    VestingEvent,
    VestingOverride,
    VestingSchedule,
)
from vestcalc.models.tax_config import IncomeRecord, TaxConfiguration

logger = logging.getLogger(__name__)


class ScenarioExercise(ExerciseRequest):
    grant_id: str


class ScenarioSale(SaleRequest):
    grant_id: str | None = None
    currency: str = "USD"


class ScenarioDefinition(BaseModel):
    """A named what-if scenario declared in the input file."""

    name: str
    description: str | None = None
    marginal_rate: Decimal | None = None
    exercises: list[ScenarioExercise] = []
    sales: list[ScenarioSale] = []


@dataclass
class PortfolioInput:
    """Everything loaded from one portfolio file."""

    ledgers: list[GrantLedger] = field(default_factory=list)
    fmv_history: list[FMVEntry] = field(default_factory=list)
    income_records: list[IncomeRecord] = field(default_factory=list)
    rate_table: RateTable = field(default_factory=RateTable)
    tax_configurations: dict[int, TaxConfiguration] = field(default_factory=dict)
    scenarios: list[ScenarioDefinition] = field(default_factory=list)

    def ledger(self, grant_id: str) -> GrantLedger | None:
        for ledger in self.ledgers:
            if ledger.grant.id == grant_id:
                return ledger
        return None

    def tax_configuration(self, year: int) -> TaxConfiguration:
        """Configuration supplied for ``year``, else the built-in tables."""
        config = self.tax_configurations.get(year)
        if config is not None:
            return config
        return default_tax_configuration(year)

    @property
    def exercises(self):
        return [e for ledger in self.ledgers for e in ledger.exercises]

    @property
    def sales(self):
        return [s for ledger in self.ledgers for s in ledger.sales]


class PortfolioLoader:
    """Loads a portfolio JSON file into validated domain models."""

    def __init__(self, accountant: ExerciseSaleAccountant | None = None) -> None:
        self.accountant = accountant or ExerciseSaleAccountant()

    def load(self, file_path: Path) -> PortfolioInput:
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            raw = json.loads(file_path.read_text())
        except json.JSONDecodeError as e:
            raise DataValidationError("file", f"{file_path} is not valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise DataValidationError("file", "top-level JSON value must be an object")

        portfolio = self.parse(raw)
        logger.info(
            "Loaded %d grant(s), %d income record(s), %d scenario(s) from %s",
            len(portfolio.ledgers),
            len(portfolio.income_records),
            len(portfolio.scenarios),
            file_path,
        )
        return portfolio

    def parse(self, raw: dict) -> PortfolioInput:
        try:
            ledgers = [self._parse_grant(g) for g in raw.get("grants", [])]
            fmv_history = [FMVEntry.model_validate(e) for e in raw.get("fmv_history", [])]
            income_records = [
                IncomeRecord.model_validate(r) for r in raw.get("income_records", [])
            ]
            rate_table = RateTable.model_validate(raw.get("exchange_rates") or {})
            scenarios = [
                ScenarioDefinition.model_validate(s) for s in raw.get("scenarios", [])
            ]
        except ValidationError as e:
            raise DataValidationError("portfolio", _first_error(e)) from e

        ids = [ledger.grant.id for ledger in ledgers]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise DataValidationError("grants", f"duplicate grant id(s): {', '.join(duplicates)}")

        return PortfolioInput(
            ledgers=ledgers,
            fmv_history=fmv_history,
            income_records=income_records,
            rate_table=rate_table,
            tax_configurations=self._parse_tax_configurations(raw.get("tax_configuration")),
            scenarios=scenarios,
        )

    def validate(self, portfolio: PortfolioInput) -> list[str]:
        """Non-fatal issues worth reporting. Returns a list of warning messages."""
        warnings = []
        for ledger in portfolio.ledgers:
            grant = ledger.grant
            if ledger.schedule is None:
                warnings.append(f"Grant {grant.id} has no vesting schedule")
            if not any(e.currency == grant.currency for e in portfolio.fmv_history):
                warnings.append(f"Grant {grant.id}: no {grant.currency} FMV history")

        currencies = {r.currency for r in portfolio.income_records}
        for config in portfolio.tax_configurations.values():
            for currency in sorted(currencies - {config.currency}):
                if portfolio.rate_table.lookup(currency, config.currency) is None:
                    warnings.append(
                        f"No {currency}->{config.currency} rate for {config.tax_year} income"
                    )
        return warnings

    # --- Parsers ---

    def _parse_grant(self, data: dict) -> GrantLedger:
        grant = Grant.model_validate(data)

        schedule = None
        raw_schedule = data.get("vesting_schedule")
        if raw_schedule is not None:
            schedule = VestingSchedule.model_validate({"grant_id": grant.id, **raw_schedule})

        milestone_vestings = [
            VestingEvent.model_validate(
                {
                    "id": f"{grant.id}-m{n}",
                    "grant_id": grant.id,
                    "fmv_at_vest": grant.fmv_at_grant,
                    "status": "vested",
                    **event,
                }
            )
            for n, event in enumerate(data.get("milestone_vestings", []), start=1)
        ]
        if milestone_vestings and (schedule is None or schedule.kind != ScheduleKind.MILESTONE):
            logger.warning(
                "Grant %s lists milestone vestings without a milestone schedule", grant.id
            )

        ledger = GrantLedger(
            grant=grant,
            schedule=schedule,
            overrides=[VestingOverride.model_validate(o) for o in data.get("vesting_overrides", [])],
            milestone_vestings=milestone_vestings,
        )

        requests = sorted(
            (ExerciseRequest.model_validate(e) for e in data.get("exercises", [])),
            key=lambda r: r.exercise_date,
        )
        for request in requests:
            ledger.exercises.append(self.accountant.record_exercise(ledger, request))

        sale_requests = sorted(
            (SaleRequest.model_validate(s) for s in data.get("sales", [])),
            key=lambda r: r.sale_date,
        )
        for request in sale_requests:
            ledger.sales.append(self.accountant.record_sale(request, ledger))

        return ledger

    @staticmethod
    def _parse_tax_configurations(raw: dict | list | None) -> dict[int, TaxConfiguration]:
        """Accept one configuration or a list of them.

        An entry with bracket sets is taken as-is; an entry with only
        ``tax_year`` (and optionally ``region``) uses the built-in tables.
        """
        if raw is None:
            return {}
        entries = raw if isinstance(raw, list) else [raw]

        configs: dict[int, TaxConfiguration] = {}
        for entry in entries:
            if "tax_year" not in entry:
                raise DataValidationError("tax_configuration", "entry has no tax_year")
            if "federal_brackets" in entry:
                try:
                    config = TaxConfiguration.model_validate(entry)
                except ValidationError as e:
                    raise DataValidationError("tax_configuration", _first_error(e)) from e
            else:
                config = default_tax_configuration(
                    int(entry["tax_year"]), entry.get("region", DEFAULT_REGION)
                )
            configs[config.tax_year] = config
        return configs


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}"
