"""What-if scenario simulator.

Scenarios layer hypothetical exercises and sales over the recorded grants.
Each scenario is an isolated snapshot owned by one ``ScenarioSimulator``:
callers hold opaque ids, every read returns a deep copy, and clone is a
deep copy. Mutations on one scenario are serialized by that scenario's
lock; the summary is recomputed before the mutation is committed, so a
failed mutation leaves the scenario unchanged.
"""

import logging
import threading
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel

from vestcalc.engines.accountant import ExerciseSaleAccountant
from vestcalc.engines.brackets import DEFAULT_MARGINAL_RATE, DEFAULT_REPORTING_CURRENCY
from vestcalc.engines.currency import CurrencyAggregator
from vestcalc.exceptions import (
    DataValidationError,
    GrantNotFoundError,
    InvalidRateError,
    NotFoundError,
    ScenarioNotFoundError,
)
from vestcalc.models.currency import RateTable
from vestcalc.models.equity import Exercise, ExerciseRequest, GrantLedger, Sale, SaleRequest
from vestcalc.models.reports import (
    AnnualSummary,
    FieldComparison,
    ScenarioColumn,
    ScenarioComparison,
    ScenarioSummary,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

COMPARISON_FIELDS = (
    "total_exercise_cost",
    "total_taxable_benefit",
    "stock_option_deduction",
    "net_taxable_benefit",
    "total_proceeds",
    "total_capital_gain",
    "qualified_gains",
    "non_qualified_gains",
    "taxable_capital_gain",
    "marginal_rate",
    "estimated_tax",
)


class TaxScenario(BaseModel):
    id: str
    name: str
    description: str | None = None
    exercises: list[Exercise] = []
    sales: list[Sale] = []
    marginal_rate: Decimal | None = None
    summary: ScenarioSummary
    created_at: datetime
    updated_at: datetime


class _ScenarioSlot:
    """A scenario plus the lock that serializes its writers."""

    def __init__(self, scenario: TaxScenario) -> None:
        self.scenario = scenario
        self.lock = threading.RLock()


class ScenarioSimulator:
    """Creates, mutates, clones and compares what-if scenarios."""

    def __init__(
        self,
        ledgers: list[GrantLedger],
        rate_table: RateTable | None = None,
        reporting_currency: str = DEFAULT_REPORTING_CURRENCY,
        baseline: AnnualSummary | None = None,
        default_marginal_rate: Decimal = DEFAULT_MARGINAL_RATE,
        accountant: ExerciseSaleAccountant | None = None,
    ) -> None:
        self.ledgers = {ledger.grant.id: ledger for ledger in ledgers}
        self.reporting_currency = reporting_currency
        self.aggregator = CurrencyAggregator(rate_table)
        self.accountant = accountant or ExerciseSaleAccountant()
        if baseline is not None:
            default_marginal_rate = baseline.marginal_tax_rate
        self._check_rate(default_marginal_rate)
        self.default_marginal_rate = default_marginal_rate
        self._slots: dict[str, _ScenarioSlot] = {}
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _slot(self, scenario_id: str) -> _ScenarioSlot:
        with self._registry_lock:
            slot = self._slots.get(scenario_id)
        if slot is None:
            raise ScenarioNotFoundError(scenario_id)
        return slot

    def _ledger(self, grant_id: str) -> GrantLedger:
        ledger = self.ledgers.get(grant_id)
        if ledger is None:
            raise GrantNotFoundError(grant_id)
        return ledger

    def _register(self, scenario: TaxScenario) -> TaxScenario:
        with self._registry_lock:
            self._slots[scenario.id] = _ScenarioSlot(scenario)
        return scenario.model_copy(deep=True)

    def create(self, name: str, description: str | None = None) -> TaxScenario:
        now = datetime.now()
        scenario = TaxScenario(
            id=str(uuid4()),
            name=name,
            description=description,
            summary=self._summarize([], [], self.default_marginal_rate),
            created_at=now,
            updated_at=now,
        )
        logger.info("Created scenario %s (%s)", scenario.id, name)
        return self._register(scenario)

    def clone(self, scenario_id: str, new_name: str) -> TaxScenario:
        slot = self._slot(scenario_id)
        with slot.lock:
            copy = slot.scenario.model_copy(deep=True)
        now = datetime.now()
        copy.id = str(uuid4())
        copy.name = new_name
        copy.created_at = now
        copy.updated_at = now
        logger.info("Cloned scenario %s into %s (%s)", scenario_id, copy.id, new_name)
        return self._register(copy)

    def delete(self, scenario_id: str) -> None:
        with self._registry_lock:
            if self._slots.pop(scenario_id, None) is None:
                raise ScenarioNotFoundError(scenario_id)
        logger.info("Deleted scenario %s", scenario_id)

    def get(self, scenario_id: str) -> TaxScenario:
        slot = self._slot(scenario_id)
        with slot.lock:
            return slot.scenario.model_copy(deep=True)

    def summary(self, scenario_id: str) -> ScenarioSummary:
        return self.get(scenario_id).summary

    def list_scenarios(self) -> list[TaxScenario]:
        with self._registry_lock:
            slots = list(self._slots.values())
        scenarios = []
        for slot in slots:
            with slot.lock:
                scenarios.append(slot.scenario.model_copy(deep=True))
        return sorted(scenarios, key=lambda s: s.created_at)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _commit(
        self,
        slot: _ScenarioSlot,
        exercises: list[Exercise],
        sales: list[Sale],
        marginal_rate: Decimal | None,
    ) -> TaxScenario:
        """Recompute the summary, then swap in the new state. Caller holds the lock."""
        rate = marginal_rate if marginal_rate is not None else self.default_marginal_rate
        summary = self._summarize(exercises, sales, rate)
        slot.scenario = slot.scenario.model_copy(
            update={
                "exercises": exercises,
                "sales": sales,
                "marginal_rate": marginal_rate,
                "summary": summary,
                "updated_at": datetime.now(),
            },
            deep=True,
        )
        return slot.scenario.model_copy(deep=True)

    def add_exercise(
        self, scenario_id: str, grant_id: str, request: ExerciseRequest
    ) -> TaxScenario:
        """Simulate an exercise, validated against real plus simulated exercises."""
        ledger = self._ledger(grant_id)
        slot = self._slot(scenario_id)
        with slot.lock:
            scenario = slot.scenario
            simulated = [e for e in scenario.exercises if e.grant_id == grant_id]
            exercise = self.accountant.record_exercise(
                ledger, request, prior_exercises=ledger.exercises + simulated
            )
            logger.debug("Scenario %s: simulated exercise %s", scenario_id, exercise.id)
            return self._commit(
                slot, scenario.exercises + [exercise], scenario.sales, scenario.marginal_rate
            )

    def add_sale(
        self,
        scenario_id: str,
        request: SaleRequest,
        grant_id: str | None = None,
        currency: str = "USD",
    ) -> TaxScenario:
        """Simulate a sale.

        With a ``grant_id`` the sale is checked against the grant's real and
        simulated exercises and sales; without one it is a standalone lot in
        ``currency``.
        """
        ledger = self._ledger(grant_id) if grant_id is not None else None
        slot = self._slot(scenario_id)
        with slot.lock:
            scenario = slot.scenario
            if ledger is None:
                sale = self.accountant.record_sale(request, currency=currency)
            else:
                sim_exercises = [e for e in scenario.exercises if e.grant_id == grant_id]
                sim_sales = [s for s in scenario.sales if s.grant_id == grant_id]
                sale = self.accountant.record_sale(
                    request,
                    ledger,
                    prior_sales=ledger.sales + sim_sales,
                    exercises=ledger.exercises + sim_exercises,
                )
            logger.debug("Scenario %s: simulated sale %s", scenario_id, sale.id)
            return self._commit(
                slot, scenario.exercises, scenario.sales + [sale], scenario.marginal_rate
            )

    def remove_exercise(self, scenario_id: str, exercise_id: str) -> TaxScenario:
        slot = self._slot(scenario_id)
        with slot.lock:
            scenario = slot.scenario
            remaining = [e for e in scenario.exercises if e.id != exercise_id]
            if len(remaining) == len(scenario.exercises):
                raise NotFoundError("Exercise", exercise_id)
            dependent = [s.id for s in scenario.sales if s.exercise_id == exercise_id]
            if dependent:
                raise DataValidationError(
                    "exercise_id",
                    f"exercise {exercise_id} is sold by simulated sale(s) {', '.join(dependent)}",
                )
            self._replay_sales(scenario.sales, remaining, exercise_id)
            return self._commit(slot, remaining, scenario.sales, scenario.marginal_rate)

    def _replay_sales(
        self, sales: list[Sale], exercises: list[Exercise], removed_exercise_id: str
    ) -> None:
        """Re-validate simulated grant sales, in order, against ``exercises``."""
        replayed: list[Sale] = []
        for sale in sales:
            if sale.grant_id is None:
                continue
            ledger = self._ledger(sale.grant_id)
            request = SaleRequest(
                id=sale.id,
                sale_date=sale.sale_date,
                quantity=sale.quantity,
                sale_price=sale.sale_price,
                cost_basis_per_share=sale.cost_basis_per_share,
                acquisition_date=sale.acquisition_date,
                exercise_id=sale.exercise_id,
            )
            try:
                self.accountant.record_sale(
                    request,
                    ledger,
                    prior_sales=ledger.sales
                    + [s for s in replayed if s.grant_id == sale.grant_id],
                    exercises=ledger.exercises
                    + [e for e in exercises if e.grant_id == sale.grant_id],
                )
            except DataValidationError as e:
                raise DataValidationError(
                    "exercise_id",
                    f"removing exercise {removed_exercise_id} leaves simulated sale "
                    f"{sale.id} invalid: {e}",
                ) from e
            replayed.append(sale)

    def remove_sale(self, scenario_id: str, sale_id: str) -> TaxScenario:
        slot = self._slot(scenario_id)
        with slot.lock:
            scenario = slot.scenario
            remaining = [s for s in scenario.sales if s.id != sale_id]
            if len(remaining) == len(scenario.sales):
                raise NotFoundError("Sale", sale_id)
            return self._commit(slot, scenario.exercises, remaining, scenario.marginal_rate)

    def set_marginal_rate(self, scenario_id: str, rate: Decimal | None) -> TaxScenario:
        """Override the scenario's marginal rate; ``None`` restores the default."""
        if rate is not None:
            self._check_rate(rate)
        slot = self._slot(scenario_id)
        with slot.lock:
            scenario = slot.scenario
            return self._commit(slot, scenario.exercises, scenario.sales, rate)

    @staticmethod
    def _check_rate(rate: Decimal) -> None:
        if rate < ZERO or rate > Decimal("1"):
            raise InvalidRateError(rate)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def _summarize(
        self, exercises: list[Exercise], sales: list[Sale], marginal_rate: Decimal
    ) -> ScenarioSummary:
        currency = self.reporting_currency

        def convert(amount: Decimal, from_currency: str) -> Decimal:
            return self.aggregator.convert(amount, from_currency, currency)

        exercise_cost = benefit = deduction = ZERO
        for exercise in exercises:
            exercise_cost += convert(exercise.exercise_cost, exercise.currency)
            benefit += convert(exercise.taxable_benefit, exercise.currency)
            deduction += convert(exercise.stock_option_deduction, exercise.currency)

        proceeds = gain = qualified = non_qualified = taxable_gain = ZERO
        for sale in sales:
            sale_gain = convert(sale.capital_gain, sale.currency)
            proceeds += convert(sale.proceeds, sale.currency)
            gain += sale_gain
            if sale.is_qualified:
                qualified += sale_gain
            else:
                non_qualified += sale_gain
            taxable_gain += convert(sale.taxable_capital_gain, sale.currency)

        net_benefit = benefit - deduction
        return ScenarioSummary(
            currency=currency,
            exercise_count=len(exercises),
            sale_count=len(sales),
            total_exercise_cost=exercise_cost,
            total_taxable_benefit=benefit,
            stock_option_deduction=deduction,
            net_taxable_benefit=net_benefit,
            total_proceeds=proceeds,
            total_capital_gain=gain,
            qualified_gains=qualified,
            non_qualified_gains=non_qualified,
            taxable_capital_gain=taxable_gain,
            marginal_rate=marginal_rate,
            estimated_tax=(net_benefit + taxable_gain) * marginal_rate,
        )

    def compare(self, scenario_ids: list[str]) -> ScenarioComparison:
        """Side-by-side summaries with deltas against the first scenario."""
        if len(scenario_ids) < 2:
            raise DataValidationError(
                "scenario_ids", f"at least 2 scenarios required, got {len(scenario_ids)}"
            )
        scenarios = [self.get(scenario_id) for scenario_id in scenario_ids]

        fields = []
        for name in COMPARISON_FIELDS:
            values = [getattr(s.summary, name) for s in scenarios]
            fields.append(
                FieldComparison(
                    field=name, values=values, deltas=[v - values[0] for v in values]
                )
            )

        return ScenarioComparison(
            baseline_id=scenarios[0].id,
            scenarios=[
                ScenarioColumn(scenario_id=s.id, name=s.name, summary=s.summary)
                for s in scenarios
            ],
            fields=fields,
        )
