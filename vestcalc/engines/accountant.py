"""Exercise and sale accounting.

Validates exercises and sales against a grant's vesting and exercise state
and derives the figures that drive tax:

  - exercise_cost = quantity * strike_price
  - taxable_benefit = quantity * max(0, fmv_at_exercise - strike_price);
    underwater exercises have zero benefit, never a loss
  - capital_gain = proceeds - cost_basis (may be negative)
  - taxable_capital_gain = capital_gain * 50% inclusion, sign preserved
  - is_qualified = held at least 730 days AND the grant-kind eligibility
    conditions (options only) hold
  - stock_option_deduction = 50% of the benefit when eligible

Nothing here persists records; callers store the returned models.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

from vestcalc.engines.brackets import (
    CAPITAL_GAINS_INCLUSION_RATE,
    QUALIFIED_HOLDING_PERIOD_DAYS,
    STOCK_OPTION_DEDUCTION_RATE,
)
from vestcalc.engines.vesting import VestingScheduleGenerator
from vestcalc.exceptions import (
    DataValidationError,
    InsufficientSharesError,
    NotFoundError,
    SaleBeforeAcquisitionError,
)
from vestcalc.models.equity import (
    Exercise,
    ExerciseRequest,
    GrantLedger,
    OptionEligibility,
    Sale,
    SaleRequest,
)
from vestcalc.models.reports import BatchTaxEstimate, ExerciseTaxEstimate, SaleTaxEstimate

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ExerciseSaleAccountant:
    """Computes taxable benefit, cost basis, capital gain and qualification."""

    def __init__(self, vesting: VestingScheduleGenerator | None = None) -> None:
        self.vesting = vesting or VestingScheduleGenerator()

    # ------------------------------------------------------------------
    # Exercises
    # ------------------------------------------------------------------

    def record_exercise(
        self,
        ledger: GrantLedger,
        request: ExerciseRequest,
        prior_exercises: list[Exercise] | None = None,
    ) -> Exercise:
        """Validate an exercise and derive its cost and taxable benefit.

        ``prior_exercises`` defaults to the ledger's recorded exercises; the
        scenario simulator passes real plus simulated ones.
        """
        grant = ledger.grant
        if prior_exercises is None:
            prior_exercises = ledger.exercises

        if request.quantity <= 0:
            raise DataValidationError("quantity", f"must be positive, got {request.quantity}")
        if not grant.is_exercisable:
            raise DataValidationError(
                "grant_kind", f"{grant.grant_kind} grant {grant.id} cannot be exercised"
            )
        if grant.strike_price is None:
            raise DataValidationError(
                "strike_price", f"{grant.grant_kind} grant {grant.id} has no strike price"
            )
        if request.fmv_at_exercise < ZERO:
            raise DataValidationError(
                "fmv_at_exercise", f"must be >= 0, got {request.fmv_at_exercise}"
            )
        if request.exercise_date < grant.grant_date:
            raise DataValidationError(
                "exercise_date",
                f"exercise on {request.exercise_date} precedes grant date {grant.grant_date}",
            )
        if grant.expiration_date is not None and request.exercise_date > grant.expiration_date:
            raise DataValidationError(
                "exercise_date",
                f"grant {grant.id} expired on {grant.expiration_date}",
            )

        vested = self.vesting.vested_quantity_for(ledger, request.exercise_date)
        already_exercised = sum(e.quantity for e in prior_exercises)
        available = vested - already_exercised
        if request.quantity > available:
            raise InsufficientSharesError(grant.id, request.quantity, max(available, 0))

        strike = grant.strike_price
        taxable_benefit = request.quantity * max(request.fmv_at_exercise - strike, ZERO)
        deduction = ZERO
        if request.eligibility.is_eligible:
            deduction = taxable_benefit * STOCK_OPTION_DEDUCTION_RATE

        exercise = Exercise(
            id=request.id or str(uuid4()),
            grant_id=grant.id,
            currency=grant.currency,
            exercise_date=request.exercise_date,
            quantity=request.quantity,
            strike_price=strike,
            fmv_at_exercise=request.fmv_at_exercise,
            exercise_method=request.exercise_method,
            eligibility=request.eligibility,
            exercise_cost=request.quantity * strike,
            taxable_benefit=taxable_benefit,
            stock_option_deduction=deduction,
            notes=request.notes,
        )
        logger.debug(
            "Exercise of %d %s shares on %s: cost=%s benefit=%s",
            exercise.quantity,
            grant.id,
            exercise.exercise_date,
            exercise.exercise_cost,
            exercise.taxable_benefit,
        )
        return exercise

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def record_sale(
        self,
        request: SaleRequest,
        ledger: GrantLedger | None = None,
        prior_sales: list[Sale] | None = None,
        exercises: list[Exercise] | None = None,
        currency: str = "USD",
    ) -> Sale:
        """Validate a sale and derive proceeds, gain and qualification.

        Without a ledger the sale is a standalone RSU/RSA lot: the caller
        must supply the acquisition date and cost basis and no availability
        check applies. ``prior_sales`` and ``exercises`` default to the
        ledger's records. With a ledger and no ``cost_basis_per_share`` the
        grant's acquisition cost per share is used. Option sales can never
        exceed the shares exercised by the sale date minus every prior sale,
        linked or not.
        """
        if request.quantity <= 0:
            raise DataValidationError("quantity", f"must be positive, got {request.quantity}")
        if request.sale_price < ZERO:
            raise DataValidationError("sale_price", f"must be >= 0, got {request.sale_price}")

        if ledger is not None:
            if prior_sales is None:
                prior_sales = ledger.sales
            if exercises is None:
                exercises = ledger.exercises
            currency = ledger.grant.currency
        prior_sales = prior_sales or []
        exercises = exercises or []

        exercise = None
        if request.exercise_id is not None:
            exercise = next((e for e in exercises if e.id == request.exercise_id), None)
            if exercise is None:
                raise NotFoundError("Exercise", request.exercise_id)

        acquisition_date = self._acquisition_date(request, exercise)
        if request.sale_date < acquisition_date:
            raise SaleBeforeAcquisitionError(request.sale_date, acquisition_date)

        basis_per_share = request.cost_basis_per_share
        if basis_per_share is None:
            basis_per_share = self._default_basis(ledger, acquisition_date)
        if basis_per_share < ZERO:
            raise DataValidationError(
                "cost_basis_per_share", f"must be >= 0, got {basis_per_share}"
            )

        if ledger is not None:
            self._check_available(ledger, request, exercise, exercises, prior_sales)

        eligible = self._is_eligible(request, ledger, exercise)
        proceeds = request.quantity * request.sale_price
        cost_basis = request.quantity * basis_per_share
        capital_gain = proceeds - cost_basis
        holding_period_days = (request.sale_date - acquisition_date).days
        is_qualified = holding_period_days >= QUALIFIED_HOLDING_PERIOD_DAYS and eligible

        deduction = ZERO
        if is_qualified and exercise is not None:
            deduction = exercise.benefit_per_share * request.quantity * STOCK_OPTION_DEDUCTION_RATE

        sale = Sale(
            id=request.id or str(uuid4()),
            grant_id=ledger.grant.id if ledger is not None else None,
            exercise_id=request.exercise_id,
            currency=currency,
            sale_date=request.sale_date,
            acquisition_date=acquisition_date,
            quantity=request.quantity,
            sale_price=request.sale_price,
            cost_basis_per_share=basis_per_share,
            proceeds=proceeds,
            cost_basis=cost_basis,
            capital_gain=capital_gain,
            taxable_capital_gain=capital_gain * CAPITAL_GAINS_INCLUSION_RATE,
            holding_period_days=holding_period_days,
            is_qualified=is_qualified,
            stock_option_deduction=deduction,
            notes=request.notes,
        )
        logger.debug(
            "Sale of %d shares on %s: gain=%s held=%d days qualified=%s",
            sale.quantity,
            sale.sale_date,
            sale.capital_gain,
            sale.holding_period_days,
            sale.is_qualified,
        )
        return sale

    @staticmethod
    def _acquisition_date(request: SaleRequest, exercise: Exercise | None) -> date:
        """Exercise date for option shares, otherwise the caller's vest date."""
        if exercise is not None:
            return exercise.exercise_date
        if request.acquisition_date is None:
            raise DataValidationError(
                "acquisition_date", "required when the sale is not linked to an exercise"
            )
        return request.acquisition_date

    def _default_basis(self, ledger: GrantLedger | None, acquisition_date: date) -> Decimal:
        """The grant's acquisition cost: strike for options, FMV on the vest date otherwise."""
        if ledger is None:
            raise DataValidationError(
                "cost_basis_per_share", "required when the sale is not tied to a grant"
            )
        fmv_at_vest = None
        if not ledger.grant.is_exercisable:
            for event in self.vesting.events_for_ledger(ledger, acquisition_date):
                if event.vest_date == acquisition_date:
                    fmv_at_vest = event.fmv_at_vest
        return ledger.grant.acquisition_cost_per_share(fmv_at_vest)

    def _check_available(
        self,
        ledger: GrantLedger,
        request: SaleRequest,
        exercise: Exercise | None,
        exercises: list[Exercise],
        prior_sales: list[Sale],
    ) -> None:
        grant = ledger.grant
        if grant.is_exercisable:
            acquired = sum(e.quantity for e in exercises if e.exercise_date <= request.sale_date)
            available = acquired - sum(s.quantity for s in prior_sales)
            if exercise is not None:
                sold = sum(s.quantity for s in prior_sales if s.exercise_id == exercise.id)
                available = min(available, exercise.quantity - sold)
            kind = "exercised"
        else:
            acquired = self.vesting.vested_quantity_for(ledger, request.sale_date)
            available = acquired - sum(s.quantity for s in prior_sales)
            kind = "vested"

        if request.quantity > available:
            raise InsufficientSharesError(grant.id, request.quantity, max(available, 0), kind)

    @staticmethod
    def _is_eligible(
        request: SaleRequest, ledger: GrantLedger | None, exercise: Exercise | None
    ) -> bool:
        """Grant-kind eligibility. Only option shares carry extra conditions."""
        if ledger is None or not ledger.grant.is_exercisable:
            return True
        eligibility = request.eligibility
        if eligibility is None:
            eligibility = exercise.eligibility if exercise is not None else OptionEligibility()
        return eligibility.is_eligible

    # ------------------------------------------------------------------
    # Stand-alone estimates
    # ------------------------------------------------------------------

    def estimate_exercise_tax(
        self,
        quantity: int,
        strike_price: Decimal,
        fmv_at_exercise: Decimal,
        marginal_rate: Decimal,
        eligible: bool = True,
    ) -> ExerciseTaxEstimate:
        """Tax on a hypothetical exercise, independent of any recorded grant."""
        if quantity <= 0:
            raise DataValidationError("quantity", f"must be positive, got {quantity}")
        taxable_benefit = quantity * max(fmv_at_exercise - strike_price, ZERO)
        deduction = taxable_benefit * STOCK_OPTION_DEDUCTION_RATE if eligible else ZERO
        net_taxable = taxable_benefit - deduction
        return ExerciseTaxEstimate(
            quantity=quantity,
            strike_price=strike_price,
            fmv_at_exercise=fmv_at_exercise,
            exercise_cost=quantity * strike_price,
            taxable_benefit=taxable_benefit,
            stock_option_deduction=deduction,
            net_taxable=net_taxable,
            estimated_tax=net_taxable * marginal_rate,
        )

    def estimate_sale_tax(
        self,
        quantity: int,
        sale_price: Decimal,
        cost_basis_per_share: Decimal,
        acquisition_date: date,
        sale_date: date,
        marginal_rate: Decimal,
    ) -> SaleTaxEstimate:
        """Tax on a hypothetical sale. A loss yields a negative estimate (a saving)."""
        if quantity <= 0:
            raise DataValidationError("quantity", f"must be positive, got {quantity}")
        if sale_date < acquisition_date:
            raise SaleBeforeAcquisitionError(sale_date, acquisition_date)
        proceeds = quantity * sale_price
        cost_basis = quantity * cost_basis_per_share
        capital_gain = proceeds - cost_basis
        taxable_gain = capital_gain * CAPITAL_GAINS_INCLUSION_RATE
        return SaleTaxEstimate(
            quantity=quantity,
            sale_price=sale_price,
            cost_basis=cost_basis,
            total_proceeds=proceeds,
            capital_gain=capital_gain,
            holding_period_days=(sale_date - acquisition_date).days,
            taxable_gain=taxable_gain,
            estimated_tax=taxable_gain * marginal_rate,
        )

    def estimate_batch(
        self,
        exercises: list[dict],
        sales: list[dict],
        marginal_rate: Decimal,
    ) -> BatchTaxEstimate:
        """Estimate several exercises and sales at one marginal rate.

        Each dict holds the keyword arguments of ``estimate_exercise_tax`` or
        ``estimate_sale_tax`` minus ``marginal_rate``.
        """
        exercise_results = [
            self.estimate_exercise_tax(marginal_rate=marginal_rate, **e) for e in exercises
        ]
        sale_results = [self.estimate_sale_tax(marginal_rate=marginal_rate, **s) for s in sales]
        exercise_tax = sum((r.estimated_tax for r in exercise_results), ZERO)
        sale_tax = sum((r.estimated_tax for r in sale_results), ZERO)
        return BatchTaxEstimate(
            exercises=exercise_results,
            sales=sale_results,
            total_exercise_tax=exercise_tax,
            total_sale_tax=sale_tax,
            total_tax=exercise_tax + sale_tax,
        )
