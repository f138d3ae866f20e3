"""Customer fee calculation.

``compute_total_fee`` turns a carrier-quoted base fee into the amount charged
in the settlement currency:

1. base = base_fee × conversion_rate
2. carrier = base + value (Flat) or base × (1 + value / 100) (Percentage)
3. insurance = declared_value × conversion_rate × insurance% / 100
4. pickup = pickup_base_fee × (1 + pickup% / 100)
5. total = carrier + insurance + pickup

Arithmetic is done in ``Decimal``. Each reported amount, including the
total, is rounded half-up to cents from the unrounded intermediates.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from shipdesk.core.constants import MONEY_QUANTUM, PERCENT
from shipdesk.core.errors import ValidationError
from shipdesk.modules.markup.constants import MarkupType


Number = Decimal | int | float | str


def to_decimal(value: Number) -> Decimal:
    """Convert a number to ``Decimal`` without binary float noise.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError("Booleans are not amounts")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round_money(amount: Decimal) -> Decimal:
    """Round an amount half-up to two decimal places."""
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class CarrierMarkup:
    """A carrier markup: Flat adds ``value``, Percentage adds ``value`` percent."""

    type: MarkupType | str
    value: Number


@dataclass(frozen=True, slots=True)
class FeeInputs:
    """Everything ``compute_total_fee`` needs.

    ``base_fee`` and ``declared_value`` are in the carrier's base currency;
    ``pickup_base_fee`` is already in the settlement currency.
    """

    base_fee: Number
    conversion_rate: Number
    carrier_markup: CarrierMarkup
    declared_value: Number = 0
    insurance_markup_percentage: Number = 0
    pickup_base_fee: Number = 0
    pickup_markup_percentage: Number = 0


@dataclass(frozen=True, slots=True)
class FeeBreakdown:
    """Per-category fees and the total, in the settlement currency."""

    base_fee_settlement: Decimal
    carrier_fee: Decimal
    insurance_fee: Decimal
    pickup_fee: Decimal
    total_fee: Decimal
    currency: str | None = field(default=None, compare=False)

    def as_dict(self) -> dict[str, Any]:
        return {
            "base_fee_settlement": self.base_fee_settlement,
            "carrier_fee": self.carrier_fee,
            "insurance_fee": self.insurance_fee,
            "pickup_fee": self.pickup_fee,
            "total_fee": self.total_fee,
            "currency": self.currency,
        }


def _parse_fields(inputs: FeeInputs) -> tuple[dict[str, Decimal], list[dict[str, Any]]]:
    raw = {
        "base_fee": inputs.base_fee,
        "conversion_rate": inputs.conversion_rate,
        "carrier_markup.value": inputs.carrier_markup.value,
        "declared_value": inputs.declared_value,
        "insurance_markup_percentage": inputs.insurance_markup_percentage,
        "pickup_base_fee": inputs.pickup_base_fee,
        "pickup_markup_percentage": inputs.pickup_markup_percentage,
    }
    values: dict[str, Decimal] = {}
    errors: list[dict[str, Any]] = []

    for name, value in raw.items():
        try:
            values[name] = to_decimal(value)
        except ValueError as e:
            errors.append({"field": name, "message": str(e)})

    return values, errors


def validate_fee_inputs(inputs: FeeInputs) -> tuple[dict[str, Decimal], MarkupType]:
    """Check every input and return them as decimals.

    Raises:
        ValidationError: Listing each offending field
    """
    values, errors = _parse_fields(inputs)

    try:
        markup_type = MarkupType(inputs.carrier_markup.type)
    except ValueError:
        markup_type = None
        errors.append(
            {
                "field": "carrier_markup.type",
                "message": f"Must be one of: {', '.join(t.value for t in MarkupType)}",
            }
        )

    rate = values.get("conversion_rate")
    if rate is not None and rate <= 0:
        errors.append({"field": "conversion_rate", "message": "Must be greater than 0"})

    for name in (
        "base_fee",
        "declared_value",
        "pickup_base_fee",
        "carrier_markup.value",
        "insurance_markup_percentage",
        "pickup_markup_percentage",
    ):
        if name in values and values[name] < 0:
            errors.append({"field": name, "message": "Must not be negative"})

    if errors or markup_type is None:
        raise ValidationError("Invalid fee inputs", errors=errors)

    return values, markup_type


def compute_total_fee(inputs: FeeInputs, currency: str | None = None) -> FeeBreakdown:
    """Compute the customer-facing fee breakdown.

    Pure and deterministic: equal inputs give equal breakdowns.

    Args:
        inputs: Base fees, conversion rate and markups
        currency: Settlement currency code to label the result with

    Returns:
        The rounded fee breakdown

    Raises:
        ValidationError: If the conversion rate is not positive, the markup
            type is unknown, or any amount or percentage is negative
    """
    values, markup_type = validate_fee_inputs(inputs)
    rate = values["conversion_rate"]
    markup_value = values["carrier_markup.value"]

    base = values["base_fee"] * rate
    if markup_type is MarkupType.FLAT:
        carrier = base + markup_value
    else:
        carrier = base * (1 + markup_value / PERCENT)

    insurance = values["declared_value"] * rate * values["insurance_markup_percentage"] / PERCENT
    pickup = values["pickup_base_fee"] * (1 + values["pickup_markup_percentage"] / PERCENT)
    total = carrier + insurance + pickup

    return FeeBreakdown(
        base_fee_settlement=round_money(base),
        carrier_fee=round_money(carrier),
        insurance_fee=round_money(insurance),
        pickup_fee=round_money(pickup),
        total_fee=round_money(total),
        currency=currency,
    )
