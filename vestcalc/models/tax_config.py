"""Tax configuration and income record models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from vestcalc.models.enums import IncomeCategory, IncomeFrequency


class TaxBracket(BaseModel):
    """One progressive bracket. ``up_to_income == 0`` marks the unbounded top bracket."""

    up_to_income: Decimal = Field(ge=0)
    rate: Decimal

    @property
    def is_unbounded(self) -> bool:
        return self.up_to_income == 0


class TaxParameters(BaseModel):
    cpp_rate: Decimal = Decimal("0.0595")
    cpp_max_pensionable_earnings: Decimal = Decimal("68500")
    cpp_basic_exemption: Decimal = Decimal("3500")
    ei_rate: Decimal = Decimal("0.0163")
    ei_max_insurable_earnings: Decimal = Decimal("63200")
    basic_personal_amount: Decimal = Decimal("15705")


class TaxConfiguration(BaseModel):
    """Bracket sets and payroll parameters for one (tax_year, region)."""

    tax_year: int
    region: str = "ON"
    currency: str = "CAD"
    federal_brackets: list[TaxBracket]
    provincial_brackets: list[TaxBracket]
    parameters: TaxParameters = TaxParameters()


class IncomeRecord(BaseModel):
    id: str | None = None
    source: str = ""
    category: IncomeCategory
    amount: Decimal
    currency: str = "CAD"
    frequency: IncomeFrequency = IncomeFrequency.ONE_TIME
    tax_year: int
    date_received: date | None = None
    description: str | None = None
    is_taxable: bool = True

    @property
    def annual_amount(self) -> Decimal:
        return self.amount * self.frequency.periods_per_year
