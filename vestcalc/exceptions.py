"""Custom exceptions for vestcalc."""

from decimal import Decimal


class TaxComputationError(Exception):
    """Base exception for vesting and tax computation errors."""


class ConfigurationError(TaxComputationError):
    """Raised when a bracket set, payroll parameter or vesting schedule is malformed."""

    def __init__(self, setting: str, message: str):
        self.setting = setting
        super().__init__(f"Configuration error in '{setting}': {message}")


class DataValidationError(TaxComputationError):
    """Raised when input data fails validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error on '{field}': {message}")


class InsufficientSharesError(DataValidationError):
    """Raised when an exercise or sale needs more shares than are available."""

    def __init__(self, grant_id: str, requested: int, available: int, kind: str = "vested"):
        self.grant_id = grant_id
        self.requested = requested
        self.available = available
        self.kind = kind
        super().__init__(
            "quantity",
            f"Insufficient {kind} shares in grant {grant_id}: "
            f"requested={requested}, available={available}",
        )


class SaleBeforeAcquisitionError(DataValidationError):
    """Raised when a sale is dated before the shares were acquired."""

    def __init__(self, sale_date, acquisition_date):
        self.sale_date = sale_date
        self.acquisition_date = acquisition_date
        super().__init__(
            "sale_date",
            f"sale on {sale_date} precedes acquisition on {acquisition_date}",
        )


class MissingExchangeRateError(TaxComputationError):
    """Raised when a conversion needs a currency pair absent from the rate table."""

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(f"No exchange rate from {from_currency} to {to_currency}")


class NotFoundError(TaxComputationError):
    """Raised when a referenced scenario, grant or record does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ScenarioNotFoundError(NotFoundError):
    def __init__(self, scenario_id: str):
        super().__init__("Scenario", scenario_id)


class GrantNotFoundError(NotFoundError):
    def __init__(self, grant_id: str):
        super().__init__("Grant", grant_id)


class InvalidRateError(DataValidationError):
    """Raised when a marginal rate override is outside [0, 1]."""

    def __init__(self, rate: Decimal):
        self.rate = rate
        super().__init__("marginal_rate", f"rate must be between 0 and 1, got {rate}")
