"""Progressive bracket and capped payroll contribution engine.

Brackets are applied with inclusive upper bounds: income exactly equal to a
bracket's ``up_to_income`` is taxed entirely within that bracket, so the
marginal rate at that income is that bracket's rate.
"""

import logging
from decimal import Decimal

from vestcalc.exceptions import ConfigurationError
from vestcalc.models.reports import BracketResult
from vestcalc.models.tax_config import TaxBracket

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class TaxBracketEngine:
    """Applies progressive bracket sets and payroll contributions."""

    @staticmethod
    def validate_brackets(brackets: list[TaxBracket], name: str = "brackets") -> None:
        """Reject a malformed bracket set before it is used.

        Bounds must be strictly increasing, rates within [0, 1], and exactly
        one unbounded (0) sentinel bracket, placed last.
        """
        if not brackets:
            raise ConfigurationError(name, "bracket set is empty")

        prev_bound = ZERO
        for index, bracket in enumerate(brackets):
            if bracket.rate < ZERO or bracket.rate > Decimal("1"):
                raise ConfigurationError(
                    name, f"bracket {index} has rate {bracket.rate} outside [0, 1]"
                )
            if bracket.is_unbounded:
                if index != len(brackets) - 1:
                    raise ConfigurationError(
                        name, f"unbounded bracket at position {index} is not last"
                    )
                continue
            if bracket.up_to_income <= prev_bound:
                raise ConfigurationError(
                    name,
                    f"bracket {index} bound {bracket.up_to_income} "
                    f"does not exceed previous bound {prev_bound}",
                )
            prev_bound = bracket.up_to_income

        if not brackets[-1].is_unbounded:
            raise ConfigurationError(name, "missing unbounded top bracket (up_to_income=0)")

    def apply_brackets(
        self, taxable_income: Decimal, brackets: list[TaxBracket], name: str = "brackets"
    ) -> BracketResult:
        """Apply progressive brackets, returning tax and the marginal rate."""
        self.validate_brackets(brackets, name)

        tax = ZERO
        marginal_rate = ZERO
        prev_bound = ZERO

        for bracket in brackets:
            if bracket.is_unbounded:
                taxed_slice = max(taxable_income - prev_bound, ZERO)
            else:
                taxed_slice = max(min(taxable_income, bracket.up_to_income) - prev_bound, ZERO)

            if taxed_slice > ZERO:
                tax += taxed_slice * bracket.rate
                marginal_rate = bracket.rate

            if bracket.is_unbounded or taxable_income <= bracket.up_to_income:
                break
            prev_bound = bracket.up_to_income

        logger.debug(
            "Applied %s to income %s: tax=%s marginal=%s", name, taxable_income, tax, marginal_rate
        )
        return BracketResult(tax=tax, marginal_rate=marginal_rate)

    @staticmethod
    def apply_payroll_contribution(
        earnings: Decimal, rate: Decimal, exemption: Decimal, cap: Decimal
    ) -> Decimal:
        """Capped payroll contribution such as CPP or EI.

        Earnings are clamped to ``cap``; the portion below ``exemption`` is
        excluded. The result is never negative and never exceeds
        ``rate * (cap - exemption)``.
        """
        if rate < ZERO:
            raise ConfigurationError("payroll.rate", f"negative contribution rate {rate}")
        if exemption < ZERO:
            raise ConfigurationError("payroll.exemption", f"negative exemption {exemption}")
        if cap < exemption:
            raise ConfigurationError(
                "payroll.cap", f"cap {cap} is below the basic exemption {exemption}"
            )

        contributory = min(earnings, cap) - exemption
        return max(contributory, ZERO) * rate
