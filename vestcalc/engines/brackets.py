"""Tax bracket configuration and engine constants.

Canadian federal and provincial brackets plus CPP/EI payroll parameters,
keyed by tax year (and region for provincial data). Never hardcode brackets
in computation functions; build a TaxConfiguration from these tables with
``default_tax_configuration`` or supply one from the caller.

Sources:
  - 2024: CRA T4127 Payroll Deductions Formulas (January 2024)
  - 2025: CRA T4127 Payroll Deductions Formulas (July 2025)
"""

from decimal import Decimal

from vestcalc.exceptions import ConfigurationError
from vestcalc.models.tax_config import TaxBracket, TaxConfiguration, TaxParameters

# ---------------------------------------------------------------------------
# Equity compensation constants
# ---------------------------------------------------------------------------
CAPITAL_GAINS_INCLUSION_RATE = Decimal("0.5")
STOCK_OPTION_DEDUCTION_RATE = Decimal("0.5")
QUALIFIED_HOLDING_PERIOD_DAYS = 730

# Combined federal + provincial rate assumed for projections when no
# annual summary is available.
DEFAULT_MARGINAL_RATE = Decimal("0.50")
DEFAULT_REPORTING_CURRENCY = "CAD"
DEFAULT_REGION = "ON"

# ---------------------------------------------------------------------------
# Federal brackets: {year: [(up_to_income, rate), ...]}
# An up_to_income of 0 marks the unbounded top bracket and must come last.
# ---------------------------------------------------------------------------
FEDERAL_BRACKETS: dict[int, list[tuple[Decimal, Decimal]]] = {
    2024: [
        (Decimal("55867"), Decimal("0.15")),
        (Decimal("111733"), Decimal("0.205")),
        (Decimal("173205"), Decimal("0.26")),
        (Decimal("246752"), Decimal("0.29")),
        (Decimal("0"), Decimal("0.33")),
    ],
    2025: [
        (Decimal("57375"), Decimal("0.145")),
        (Decimal("114750"), Decimal("0.205")),
        (Decimal("177882"), Decimal("0.26")),
        (Decimal("253414"), Decimal("0.29")),
        (Decimal("0"), Decimal("0.33")),
    ],
}

# ---------------------------------------------------------------------------
# Provincial brackets: {year: {region: [(up_to_income, rate), ...]}}
# Surtaxes and provincial credits are not modelled.
# ---------------------------------------------------------------------------
PROVINCIAL_BRACKETS: dict[int, dict[str, list[tuple[Decimal, Decimal]]]] = {
    2024: {
        "ON": [
            (Decimal("51446"), Decimal("0.0505")),
            (Decimal("102894"), Decimal("0.0915")),
            (Decimal("150000"), Decimal("0.1116")),
            (Decimal("220000"), Decimal("0.1216")),
            (Decimal("0"), Decimal("0.1316")),
        ],
        "BC": [
            (Decimal("47937"), Decimal("0.0506")),
            (Decimal("95875"), Decimal("0.077")),
            (Decimal("110076"), Decimal("0.105")),
            (Decimal("133664"), Decimal("0.1229")),
            (Decimal("181232"), Decimal("0.147")),
            (Decimal("252752"), Decimal("0.168")),
            (Decimal("0"), Decimal("0.205")),
        ],
    },
    2025: {
        "ON": [
            (Decimal("52886"), Decimal("0.0505")),
            (Decimal("105775"), Decimal("0.0915")),
            (Decimal("150000"), Decimal("0.1116")),
            (Decimal("220000"), Decimal("0.1216")),
            (Decimal("0"), Decimal("0.1316")),
        ],
    },
}

# ---------------------------------------------------------------------------
# CPP / EI and the federal basic personal amount
# ---------------------------------------------------------------------------
PAYROLL_PARAMETERS: dict[int, TaxParameters] = {
    2024: TaxParameters(
        cpp_rate=Decimal("0.0595"),
        cpp_max_pensionable_earnings=Decimal("68500"),
        cpp_basic_exemption=Decimal("3500"),
        ei_rate=Decimal("0.0163"),
        ei_max_insurable_earnings=Decimal("63200"),
        basic_personal_amount=Decimal("15705"),
    ),
    2025: TaxParameters(
        cpp_rate=Decimal("0.0595"),
        cpp_max_pensionable_earnings=Decimal("71300"),
        cpp_basic_exemption=Decimal("3500"),
        ei_rate=Decimal("0.0164"),
        ei_max_insurable_earnings=Decimal("65700"),
        basic_personal_amount=Decimal("16129"),
    ),
}


def _to_brackets(rows: list[tuple[Decimal, Decimal]]) -> list[TaxBracket]:
    return [TaxBracket(up_to_income=upper, rate=rate) for upper, rate in rows]


def default_tax_configuration(tax_year: int, region: str = DEFAULT_REGION) -> TaxConfiguration:
    """Build the built-in configuration for a tax year and province."""
    federal = FEDERAL_BRACKETS.get(tax_year)
    if federal is None:
        raise ConfigurationError("tax_year", f"No federal brackets for {tax_year}")
    provincial = PROVINCIAL_BRACKETS.get(tax_year, {}).get(region)
    if provincial is None:
        raise ConfigurationError("region", f"No provincial brackets for {tax_year}/{region}")

    return TaxConfiguration(
        tax_year=tax_year,
        region=region,
        currency=DEFAULT_REPORTING_CURRENCY,
        federal_brackets=_to_brackets(federal),
        provincial_brackets=_to_brackets(provincial),
        parameters=PAYROLL_PARAMETERS[tax_year].model_copy(),
    )
