"""Tests for grant, exercise and sale models."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from vestcalc.exceptions import DataValidationError
from vestcalc.models.enums import CostBasisSource, GrantKind, VestingFrequency
from vestcalc.models.equity import (
    GRANT_KIND_RULES,
    Exercise,
    Grant,
    GrantLedger,
    OptionEligibility,
)


def _grant(kind: GrantKind, strike: str | None = "10.00") -> Grant:
    return Grant(
        id=f"grant-{kind.lower()}",
        grant_kind=kind,
        quantity=100,
        strike_price=Decimal(strike) if strike is not None else None,
        fmv_at_grant=Decimal("12.00"),
        grant_date=date(2024, 1, 1),
    )


class TestGrantKindRules:
    def test_every_kind_has_rules(self):
        assert set(GRANT_KIND_RULES) == set(GrantKind)

    @pytest.mark.parametrize("kind", [GrantKind.ISO, GrantKind.NSO])
    def test_options_are_exercisable(self, kind):
        grant = _grant(kind)
        assert grant.is_exercisable
        assert grant.rules.cost_basis_source == CostBasisSource.STRIKE_PRICE
        assert grant.acquisition_cost_per_share() == Decimal("10.00")

    @pytest.mark.parametrize("kind", [GrantKind.RSU, GrantKind.RSA])
    def test_share_awards_use_fmv_at_vest(self, kind):
        grant = _grant(kind, strike=None)
        assert not grant.is_exercisable
        assert grant.acquisition_cost_per_share(Decimal("31.50")) == Decimal("31.50")
        assert grant.acquisition_cost_per_share() == Decimal("12.00")

    def test_option_cost_needs_strike(self):
        grant = _grant(GrantKind.NSO)
        grant.strike_price = None
        with pytest.raises(DataValidationError, match="strike_price"):
            grant.acquisition_cost_per_share()


class TestGrantValidation:
    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            Grant(
                id="g",
                grant_kind=GrantKind.RSU,
                quantity=0,
                fmv_at_grant=Decimal("1"),
                grant_date=date(2024, 1, 1),
            )

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            Grant.model_validate(
                {
                    "id": "g",
                    "grant_kind": "SAR",
                    "quantity": 10,
                    "fmv_at_grant": "1",
                    "grant_date": "2024-01-01",
                }
            )

    @pytest.mark.parametrize("kind", [GrantKind.ISO, GrantKind.NSO])
    def test_option_requires_strike(self, kind):
        with pytest.raises(ValidationError, match="requires a strike price"):
            _grant(kind, strike=None)

    @pytest.mark.parametrize("kind", [GrantKind.RSU, GrantKind.RSA])
    def test_share_award_rejects_strike(self, kind):
        with pytest.raises(ValidationError, match="must not have a strike price"):
            _grant(kind, strike="10.00")

    def test_default_currency(self):
        assert _grant(GrantKind.ISO).currency == "USD"


class TestEnums:
    def test_frequency_months(self):
        assert VestingFrequency.MONTHLY.months == 1
        assert VestingFrequency.QUARTERLY.months == 3
        assert VestingFrequency.ANNUALLY.months == 12


class TestOptionEligibility:
    def test_default_is_eligible(self):
        assert OptionEligibility().is_eligible

    @pytest.mark.parametrize(
        "flag", ["strike_at_or_above_grant_fmv", "common_shares", "arms_length"]
    )
    def test_any_failed_condition(self, flag):
        assert not OptionEligibility(**{flag: False}).is_eligible


class TestExercise:
    def test_derived_figures(self):
        exercise = Exercise(
            id="ex",
            grant_id="g",
            currency="USD",
            exercise_date=date(2025, 1, 1),
            quantity=100,
            strike_price=Decimal("10"),
            fmv_at_exercise=Decimal("14"),
            exercise_cost=Decimal("1000"),
            taxable_benefit=Decimal("400"),
            stock_option_deduction=Decimal("200"),
        )
        assert exercise.benefit_per_share == Decimal("4")
        assert exercise.net_taxable_benefit == Decimal("200")

    def test_negative_benefit_rejected(self):
        with pytest.raises(ValidationError):
            Exercise(
                id="ex",
                grant_id="g",
                currency="USD",
                exercise_date=date(2025, 1, 1),
                quantity=100,
                strike_price=Decimal("10"),
                fmv_at_exercise=Decimal("8"),
                exercise_cost=Decimal("1000"),
                taxable_benefit=Decimal("-200"),
            )


class TestGrantLedger:
    def test_find_exercise(self):
        ledger = GrantLedger(grant=_grant(GrantKind.ISO))
        assert ledger.find_exercise("missing") is None
        assert ledger.exercised_quantity == 0
        assert ledger.sold_quantity == 0
