"""Core grant, vesting, exercise and sale models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vestcalc.exceptions import DataValidationError
from vestcalc.models.enums import (
    CostBasisSource,
    ExerciseMethod,
    GrantKind,
    ScheduleKind,
    VestingFrequency,
    VestingStatus,
)


class GrantKindRules(BaseModel):
    """Per-kind rules. Grant kinds differ only by this data."""

    model_config = ConfigDict(frozen=True)

    exercisable: bool
    requires_strike: bool
    cost_basis_source: CostBasisSource


GRANT_KIND_RULES: dict[GrantKind, GrantKindRules] = {
    GrantKind.ISO: GrantKindRules(
        exercisable=True, requires_strike=True, cost_basis_source=CostBasisSource.STRIKE_PRICE
    ),
    GrantKind.NSO: GrantKindRules(
        exercisable=True, requires_strike=True, cost_basis_source=CostBasisSource.STRIKE_PRICE
    ),
    GrantKind.RSU: GrantKindRules(
        exercisable=False, requires_strike=False, cost_basis_source=CostBasisSource.FMV_AT_VEST
    ),
    GrantKind.RSA: GrantKindRules(
        exercisable=False, requires_strike=False, cost_basis_source=CostBasisSource.FMV_AT_VEST
    ),
}


class Grant(BaseModel):
    id: str
    grant_kind: GrantKind
    quantity: int = Field(gt=0)
    strike_price: Decimal | None = None
    fmv_at_grant: Decimal = Field(ge=0)
    currency: str = "USD"
    grant_date: date
    expiration_date: date | None = None
    company_name: str | None = None
    grant_number: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def check_strike_price(self) -> "Grant":
        if self.rules.requires_strike and self.strike_price is None:
            raise ValueError(f"{self.grant_kind} grant {self.id} requires a strike price")
        if not self.rules.requires_strike and self.strike_price is not None:
            raise ValueError(f"{self.grant_kind} grant {self.id} must not have a strike price")
        return self

    @property
    def rules(self) -> GrantKindRules:
        return GRANT_KIND_RULES[self.grant_kind]

    @property
    def is_exercisable(self) -> bool:
        return self.rules.exercisable

    def acquisition_cost_per_share(self, fmv_at_vest: Decimal | None = None) -> Decimal:
        """Cost basis per share when the shares are acquired.

        Options are acquired at the strike price; RSU/RSA shares at FMV on
        the vest date (FMV at grant when no vest FMV is known).
        """
        if self.rules.cost_basis_source == CostBasisSource.STRIKE_PRICE:
            if self.strike_price is None:
                raise DataValidationError(
                    "strike_price", f"{self.grant_kind} grant {self.id} has no strike price"
                )
            return self.strike_price
        return fmv_at_vest if fmv_at_vest is not None else self.fmv_at_grant


class VestingSchedule(BaseModel):
    grant_id: str
    kind: ScheduleKind = ScheduleKind.TIME_BASED
    cliff_months: int = 0
    total_vesting_months: int | None = None
    frequency: VestingFrequency | None = None
    milestone_description: str | None = None


class VestingEvent(BaseModel):
    id: str
    grant_id: str
    vest_date: date
    quantity: int = Field(ge=0)
    fmv_at_vest: Decimal
    status: VestingStatus = VestingStatus.PENDING
    notes: str | None = None


class VestingOverride(BaseModel):
    """Manual status for one generated event, keyed by its vest date."""

    vest_date: date
    status: VestingStatus = VestingStatus.FORFEITED
    notes: str | None = None


class OptionEligibility(BaseModel):
    """Stock-option deduction conditions. Supplied by the caller, never derived."""

    strike_at_or_above_grant_fmv: bool = True
    common_shares: bool = True
    arms_length: bool = True

    @property
    def is_eligible(self) -> bool:
        return self.strike_at_or_above_grant_fmv and self.common_shares and self.arms_length


class ExerciseRequest(BaseModel):
    exercise_date: date
    quantity: int
    fmv_at_exercise: Decimal
    exercise_method: ExerciseMethod = ExerciseMethod.CASH
    eligibility: OptionEligibility = OptionEligibility()
    id: str | None = None
    notes: str | None = None


class Exercise(BaseModel):
    id: str
    grant_id: str
    currency: str
    exercise_date: date
    quantity: int = Field(gt=0)
    strike_price: Decimal
    fmv_at_exercise: Decimal
    exercise_method: ExerciseMethod = ExerciseMethod.CASH
    eligibility: OptionEligibility = OptionEligibility()
    exercise_cost: Decimal
    taxable_benefit: Decimal = Field(ge=0)
    stock_option_deduction: Decimal = Decimal("0")
    notes: str | None = None

    @property
    def net_taxable_benefit(self) -> Decimal:
        return self.taxable_benefit - self.stock_option_deduction

    @property
    def benefit_per_share(self) -> Decimal:
        return max(self.fmv_at_exercise - self.strike_price, Decimal("0"))


class SaleRequest(BaseModel):
    sale_date: date
    quantity: int
    sale_price: Decimal
    cost_basis_per_share: Decimal | None = None
    acquisition_date: date | None = None
    exercise_id: str | None = None
    eligibility: OptionEligibility | None = None
    id: str | None = None
    notes: str | None = None


class Sale(BaseModel):
    id: str
    grant_id: str | None = None
    exercise_id: str | None = None
    currency: str
    sale_date: date
    acquisition_date: date
    quantity: int = Field(gt=0)
    sale_price: Decimal
    cost_basis_per_share: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    capital_gain: Decimal
    taxable_capital_gain: Decimal
    holding_period_days: int = Field(ge=0)
    is_qualified: bool
    stock_option_deduction: Decimal = Decimal("0")
    notes: str | None = None


class FMVEntry(BaseModel):
    account_id: str | None = None
    currency: str = "USD"
    effective_date: date
    fmv_per_share: Decimal = Field(ge=0)
    notes: str | None = None


class GrantLedger(BaseModel):
    """Everything recorded against one grant: schedule, overrides, exercises, sales."""

    grant: Grant
    schedule: VestingSchedule | None = None
    overrides: list[VestingOverride] = []
    milestone_vestings: list[VestingEvent] = []
    exercises: list[Exercise] = []
    sales: list[Sale] = []

    @property
    def exercised_quantity(self) -> int:
        return sum(e.quantity for e in self.exercises)

    @property
    def sold_quantity(self) -> int:
        return sum(s.quantity for s in self.sales)

    def find_exercise(self, exercise_id: str) -> Exercise | None:
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                return exercise
        return None
