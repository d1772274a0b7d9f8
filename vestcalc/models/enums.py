"""Enumerations for vestcalc."""

from enum import StrEnum


class GrantKind(StrEnum):
    ISO = "ISO"
    NSO = "NSO"
    RSU = "RSU"
    RSA = "RSA"


class ScheduleKind(StrEnum):
    TIME_BASED = "time_based"
    MILESTONE = "milestone"


class VestingFrequency(StrEnum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def months(self) -> int:
        return _FREQUENCY_MONTHS[self]


_FREQUENCY_MONTHS = {
    VestingFrequency.MONTHLY: 1,
    VestingFrequency.QUARTERLY: 3,
    VestingFrequency.ANNUALLY: 12,
}


class VestingStatus(StrEnum):
    PENDING = "pending"
    VESTED = "vested"
    FORFEITED = "forfeited"


class ExerciseMethod(StrEnum):
    CASH = "cash"
    CASHLESS = "cashless"
    SAME_DAY_SALE = "same_day_sale"


class CostBasisSource(StrEnum):
    STRIKE_PRICE = "STRIKE_PRICE"
    FMV_AT_VEST = "FMV_AT_VEST"


class IncomeCategory(StrEnum):
    EMPLOYMENT = "employment"
    INVESTMENT = "investment"
    RENTAL = "rental"
    BUSINESS = "business"
    OTHER = "other"


class IncomeFrequency(StrEnum):
    ONE_TIME = "one_time"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    IncomeFrequency.ONE_TIME: 1,
    IncomeFrequency.WEEKLY: 52,
    IncomeFrequency.BI_WEEKLY: 26,
    IncomeFrequency.MONTHLY: 12,
    IncomeFrequency.QUARTERLY: 4,
    IncomeFrequency.ANNUALLY: 1,
}
