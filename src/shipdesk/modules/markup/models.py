"""Markup rule database models."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shipdesk.core.constants import (
    CURRENCY_CODE_LENGTH,
    MAX_CARRIER_NAME_LENGTH,
    MONEY_PRECISION,
    MONEY_SCALE,
)
from shipdesk.core.database.base import Base, IntegerIDMixin, TimestampMixin
from shipdesk.modules.markup.constants import MarkupType


def plain_number(value: Decimal) -> str:
    """Render a decimal without trailing zeros or exponent, e.g. 3.5000 -> "3.5"."""
    return format(value.normalize(), "f")


class MarkupRule(Base, IntegerIDMixin, TimestampMixin):
    """A markup rule for one fee category and carrier.

    A rule whose carrier is ``"*"`` applies to every carrier that has no
    rule of its own in the same category.

    Attributes:
        category: carrier, pickup or insurance
        carrier: Carrier display name, or ``"*"``
        base_currency: ISO code the carrier quotes in
        conversion_rate: Multiplier from base currency to settlement currency
        markup_type: Flat or Percentage
        markup_value: Currency amount (Flat) or percentage points (Percentage)
    """

    __tablename__ = "markup_rules"
    __table_args__ = (
        UniqueConstraint("category", "carrier", name="uq_markup_rules_category_carrier"),
        CheckConstraint("conversion_rate > 0", name="ck_markup_rules_conversion_rate_positive"),
        CheckConstraint("markup_value >= 0", name="ck_markup_rules_markup_value_non_negative"),
        CheckConstraint(
            "markup_type IN ('Flat', 'Percentage')", name="ck_markup_rules_markup_type"
        ),
        CheckConstraint(
            "category IN ('carrier', 'pickup', 'insurance')", name="ck_markup_rules_category"
        ),
    )

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )
    carrier: Mapped[str] = mapped_column(
        String(MAX_CARRIER_NAME_LENGTH),
        nullable=False,
    )
    base_currency: Mapped[str] = mapped_column(
        String(CURRENCY_CODE_LENGTH),
        nullable=False,
    )
    conversion_rate: Mapped[Decimal] = mapped_column(
        Numeric(MONEY_PRECISION, MONEY_SCALE),
        nullable=False,
    )
    markup_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    markup_value: Mapped[Decimal] = mapped_column(
        Numeric(MONEY_PRECISION, MONEY_SCALE),
        nullable=False,
    )

    @property
    def formula_guide(self) -> str:
        """Human-readable formula, e.g. "Base + $3.5" or "Base × (1 + 5%)"."""
        value = plain_number(Decimal(self.markup_value))
        if self.markup_type == MarkupType.FLAT:
            return f"Base + ${value}"
        return f"Base × (1 + {value}%)"

    def __repr__(self) -> str:
        return (
            f"<MarkupRule(id={self.id}, category={self.category}, "
            f"carrier={self.carrier})>"
        )
