"""Exchange rate table model."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class RateTable(BaseModel):
    """Rates keyed ``rates[from_currency][to_currency]``, valid as of ``as_of``."""

    rates: dict[str, dict[str, Decimal]] = {}
    as_of: date | None = None

    def lookup(self, from_currency: str, to_currency: str) -> Decimal | None:
        return self.rates.get(from_currency, {}).get(to_currency)

    @property
    def currencies(self) -> set[str]:
        found = set(self.rates)
        for targets in self.rates.values():
            found.update(targets)
        return found
