"""Unit tests for the customer fee calculator."""

from decimal import Decimal

import pytest

from shipdesk.core.errors import ValidationError
from shipdesk.modules.markup.calculator import (
    CarrierMarkup,
    FeeInputs,
    compute_total_fee,
    round_money,
    to_decimal,
)
from shipdesk.modules.markup.constants import MarkupType


pytestmark = pytest.mark.unit


def _fields(exc_info: pytest.ExceptionInfo[ValidationError]) -> set[str]:
    return {e["field"] for e in exc_info.value.details["errors"]}


class TestComputeTotalFee:
    """Tests for compute_total_fee."""

    def test_flat_markup(self):
        """A flat markup is added to the converted base fee."""
        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=10,
                conversion_rate=Decimal("1.35"),
                carrier_markup=CarrierMarkup(MarkupType.FLAT, Decimal("3.5")),
            )
        )

        assert breakdown.base_fee_settlement == Decimal("13.50")
        assert breakdown.carrier_fee == Decimal("17.00")
        assert breakdown.insurance_fee == Decimal("0.00")
        assert breakdown.pickup_fee == Decimal("0.00")
        assert breakdown.total_fee == Decimal("17.00")

    def test_percentage_markup_with_insurance_and_pickup(self):
        """Every category contributes to the total."""
        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=100,
                conversion_rate=1,
                carrier_markup=CarrierMarkup("Percentage", 10),
                declared_value=500,
                insurance_markup_percentage=Decimal("1.25"),
                pickup_base_fee=20,
                pickup_markup_percentage=5,
            ),
            currency="CAD",
        )

        assert breakdown.carrier_fee == Decimal("110.00")
        assert breakdown.insurance_fee == Decimal("6.25")
        assert breakdown.pickup_fee == Decimal("21.00")
        assert breakdown.total_fee == Decimal("137.25")
        assert breakdown.currency == "CAD"

    def test_insurance_uses_conversion_rate(self):
        """The declared value is converted before the insurance percentage applies."""
        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=0,
                conversion_rate=2,
                carrier_markup=CarrierMarkup(MarkupType.FLAT, 0),
                declared_value=100,
                insurance_markup_percentage=1,
            )
        )

        assert breakdown.insurance_fee == Decimal("2.00")
        assert breakdown.total_fee == Decimal("2.00")

    def test_total_rounded_from_unrounded_parts(self):
        """The total is rounded once, not summed from rounded parts."""
        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=Decimal("0.005"),
                conversion_rate=1,
                carrier_markup=CarrierMarkup(MarkupType.FLAT, 0),
                pickup_base_fee=Decimal("0.004"),
            )
        )

        assert breakdown.carrier_fee == Decimal("0.01")
        assert breakdown.pickup_fee == Decimal("0.00")
        assert breakdown.total_fee == Decimal("0.01")

    def test_float_inputs_do_not_leak_binary_noise(self):
        """Floats are converted through their string form."""
        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=0.1,
                conversion_rate=3,
                carrier_markup=CarrierMarkup(MarkupType.FLAT, 0.2),
            )
        )

        assert breakdown.total_fee == Decimal("0.50")

    def test_deterministic(self):
        """Equal inputs give equal breakdowns."""
        inputs = FeeInputs(
            base_fee=Decimal("42.42"),
            conversion_rate=Decimal("1.3721"),
            carrier_markup=CarrierMarkup(MarkupType.PERCENTAGE, Decimal("7.5")),
            declared_value=250,
            insurance_markup_percentage=2,
            pickup_base_fee=15,
            pickup_markup_percentage=8,
        )

        assert compute_total_fee(inputs) == compute_total_fee(inputs)

    def test_as_dict_contains_every_amount(self):
        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=10,
                conversion_rate=1,
                carrier_markup=CarrierMarkup(MarkupType.FLAT, 1),
            ),
            currency="USD",
        )

        assert breakdown.as_dict() == {
            "base_fee_settlement": Decimal("10.00"),
            "carrier_fee": Decimal("11.00"),
            "insurance_fee": Decimal("0.00"),
            "pickup_fee": Decimal("0.00"),
            "total_fee": Decimal("11.00"),
            "currency": "USD",
        }


class TestComputeTotalFeeValidation:
    """Tests for input validation in compute_total_fee."""

    @pytest.mark.parametrize("rate", [0, -1, "-0.5"])
    def test_non_positive_conversion_rate_raises(self, rate):
        """A conversion rate of zero or less is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            compute_total_fee(
                FeeInputs(
                    base_fee=10,
                    conversion_rate=rate,
                    carrier_markup=CarrierMarkup(MarkupType.FLAT, 1),
                )
            )

        assert "conversion_rate" in _fields(exc_info)

    def test_unknown_markup_type_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_total_fee(
                FeeInputs(
                    base_fee=10,
                    conversion_rate=1,
                    carrier_markup=CarrierMarkup("Tiered", 1),
                )
            )

        assert _fields(exc_info) == {"carrier_markup.type"}

    def test_negative_amounts_raise(self):
        """Every negative amount is reported, not only the first."""
        with pytest.raises(ValidationError) as exc_info:
            compute_total_fee(
                FeeInputs(
                    base_fee=-1,
                    conversion_rate=1,
                    carrier_markup=CarrierMarkup(MarkupType.FLAT, -2),
                    declared_value=-3,
                    pickup_base_fee=-4,
                )
            )

        assert _fields(exc_info) == {
            "base_fee",
            "carrier_markup.value",
            "declared_value",
            "pickup_base_fee",
        }

    def test_non_numeric_amount_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_total_fee(
                FeeInputs(
                    base_fee="ten",
                    conversion_rate=1,
                    carrier_markup=CarrierMarkup(MarkupType.FLAT, 1),
                )
            )

        assert _fields(exc_info) == {"base_fee"}

    def test_error_code(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_total_fee(
                FeeInputs(
                    base_fee=10,
                    conversion_rate=0,
                    carrier_markup=CarrierMarkup(MarkupType.FLAT, 1),
                )
            )

        assert exc_info.value.error_code == "validation_error"
        assert exc_info.value.status_code == 400


class TestMoneyHelpers:
    """Tests for to_decimal and round_money."""

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (Decimal("1.005"), Decimal("1.01")),
            (Decimal("1.004"), Decimal("1.00")),
            (Decimal("2.675"), Decimal("2.68")),
            (Decimal("-1.005"), Decimal("-1.01")),
        ],
    )
    def test_round_money_half_up(self, amount, expected):
        assert round_money(amount) == expected

    def test_to_decimal_rejects_bool(self):
        with pytest.raises(ValueError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["nan", "inf", float("inf")])
    def test_to_decimal_rejects_non_finite(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)

    def test_to_decimal_keeps_decimal(self):
        value = Decimal("3.14")
        assert to_decimal(value) is value
