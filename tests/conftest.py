"""Shared test fixtures for vestcalc."""

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from vestcalc.engines.brackets import default_tax_configuration
from vestcalc.models.currency import RateTable
from vestcalc.models.enums import GrantKind, VestingFrequency
from vestcalc.models.equity import Grant, GrantLedger, VestingSchedule
from vestcalc.models.tax_config import TaxConfiguration


@pytest.fixture
def iso_grant() -> Grant:
    return Grant(
        id="grant-iso-001",
        grant_kind=GrantKind.ISO,
        quantity=10000,
        strike_price=Decimal("10.00"),
        fmv_at_grant=Decimal("10.00"),
        currency="USD",
        grant_date=date(2024, 1, 1),
        company_name="Acme Corp",
    )


@pytest.fixture
def monthly_schedule(iso_grant: Grant) -> VestingSchedule:
    """1-year cliff, 4-year monthly vesting."""
    return VestingSchedule(
        grant_id=iso_grant.id,
        cliff_months=12,
        total_vesting_months=48,
        frequency=VestingFrequency.MONTHLY,
    )


@pytest.fixture
def iso_ledger(iso_grant: Grant, monthly_schedule: VestingSchedule) -> GrantLedger:
    return GrantLedger(grant=iso_grant, schedule=monthly_schedule)


@pytest.fixture
def rsu_grant() -> Grant:
    return Grant(
        id="grant-rsu-001",
        grant_kind=GrantKind.RSU,
        quantity=4000,
        fmv_at_grant=Decimal("50.00"),
        currency="USD",
        grant_date=date(2023, 1, 1),
    )


@pytest.fixture
def rsu_ledger(rsu_grant: Grant) -> GrantLedger:
    """1-year cliff, 4-year quarterly: 1000 on 2024-01-01, then 250 per quarter."""
    return GrantLedger(
        grant=rsu_grant,
        schedule=VestingSchedule(
            grant_id=rsu_grant.id,
            cliff_months=12,
            total_vesting_months=48,
            frequency=VestingFrequency.QUARTERLY,
        ),
    )


@pytest.fixture
def usd_cad_rates() -> RateTable:
    return RateTable(rates={"USD": {"CAD": Decimal("1.35")}}, as_of=date(2025, 1, 1))


@pytest.fixture
def config_2024() -> TaxConfiguration:
    return default_tax_configuration(2024, "ON")


@pytest.fixture
def portfolio_data() -> dict:
    """Portfolio document with one ISO (1000 exercised, 500 sold) and one RSU grant."""
    return {
        "grants": [
            {
                "id": "grant-iso-001",
                "grant_kind": "ISO",
                "quantity": 10000,
                "strike_price": "10.00",
                "fmv_at_grant": "10.00",
                "currency": "USD",
                "grant_date": "2024-01-01",
                "company_name": "Acme Corp",
                "vesting_schedule": {
                    "cliff_months": 12,
                    "total_vesting_months": 48,
                    "frequency": "monthly",
                },
                "exercises": [
                    {
                        "id": "ex-1",
                        "exercise_date": "2025-01-15",
                        "quantity": 1000,
                        "fmv_at_exercise": "25.00",
                    }
                ],
                "sales": [
                    {
                        "sale_date": "2025-06-01",
                        "quantity": 500,
                        "sale_price": "30.00",
                        "cost_basis_per_share": "10.00",
                        "exercise_id": "ex-1",
                    }
                ],
            },
            {
                "id": "grant-rsu-001",
                "grant_kind": "RSU",
                "quantity": 4000,
                "fmv_at_grant": "50.00",
                "currency": "USD",
                "grant_date": "2023-01-01",
                "vesting_schedule": {
                    "cliff_months": 12,
                    "total_vesting_months": 48,
                    "frequency": "quarterly",
                },
            },
        ],
        "fmv_history": [
            {"currency": "USD", "effective_date": "2025-01-01", "fmv_per_share": "25.00"},
        ],
        "income_records": [
            {"source": "Acme", "category": "employment", "amount": "100000", "tax_year": 2025},
        ],
        "exchange_rates": {"as_of": "2025-01-01", "rates": {"USD": {"CAD": "1.35"}}},
        "tax_configuration": {"tax_year": 2025, "region": "ON"},
        "scenarios": [
            {"name": "Hold"},
            {
                "name": "Exercise 1000",
                "exercises": [
                    {
                        "grant_id": "grant-iso-001",
                        "exercise_date": "2025-03-01",
                        "quantity": 1000,
                        "fmv_at_exercise": "28.00",
                    }
                ],
            },
        ],
    }


@pytest.fixture
def portfolio_file(tmp_path, portfolio_data) -> Path:
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps(portfolio_data))
    return path
