"""Pydantic schemas for markup rules and fee calculation.

Amounts are not range-checked here; the service and calculator reject bad
values with a ``ValidationError`` listing every offending field.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shipdesk.core.constants import CURRENCY_CODE_LENGTH, MAX_CARRIER_NAME_LENGTH
from shipdesk.modules.markup.constants import MarkupCategory


# ============================================================
# Rule Schemas
# ============================================================


class MarkupRuleBase(BaseModel):
    """Fields shared by rule create and response schemas."""

    carrier: str = Field(..., min_length=1, max_length=MAX_CARRIER_NAME_LENGTH)
    base_currency: str = Field(
        ..., min_length=CURRENCY_CODE_LENGTH, max_length=CURRENCY_CODE_LENGTH
    )
    conversion_rate: Decimal
    markup_type: str
    markup_value: Decimal

    @field_validator("base_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class MarkupRuleCreate(MarkupRuleBase):
    """Schema for creating a markup rule; carrier ``"*"`` is the global rule."""

    category: MarkupCategory


class MarkupRuleUpdate(BaseModel):
    """Schema for a partial rule update. Category is fixed once created."""

    carrier: str | None = Field(None, min_length=1, max_length=MAX_CARRIER_NAME_LENGTH)
    base_currency: str | None = Field(
        None, min_length=CURRENCY_CODE_LENGTH, max_length=CURRENCY_CODE_LENGTH
    )
    conversion_rate: Decimal | None = None
    markup_type: str | None = None
    markup_value: Decimal | None = None

    @field_validator("base_currency")
    @classmethod
    def upper_currency(cls, v: str | None) -> str | None:
        return v.upper() if v else v


class MarkupRuleResponse(MarkupRuleBase):
    """Schema for markup rule response data."""

    id: int
    category: MarkupCategory
    formula_guide: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkupConfigResponse(BaseModel):
    """All rules grouped by category."""

    settlement_currency: str
    carrier_markups: list[MarkupRuleResponse]
    pickup_markups: list[MarkupRuleResponse]
    insurance_markups: list[MarkupRuleResponse]


# ============================================================
# Calculation Schemas
# ============================================================


class SimulationRequest(BaseModel):
    """Raw calculator inputs, no stored rules involved."""

    base_fee: Decimal
    conversion_rate: Decimal
    markup_type: str
    markup_value: Decimal
    declared_value: Decimal = Decimal(0)
    insurance_markup_percentage: Decimal = Decimal(0)
    pickup_base_fee: Decimal = Decimal(0)
    pickup_markup_percentage: Decimal = Decimal(0)


class QuoteRequest(BaseModel):
    """A carrier quote to price with the stored rules."""

    carrier: str = Field(..., min_length=1, max_length=MAX_CARRIER_NAME_LENGTH)
    base_fee: Decimal
    declared_value: Decimal = Decimal(0)
    pickup_base_fee: Decimal = Decimal(0)


class FeeBreakdownResponse(BaseModel):
    """Rounded fees in the settlement currency."""

    base_fee_settlement: Decimal
    carrier_fee: Decimal
    insurance_fee: Decimal
    pickup_fee: Decimal
    total_fee: Decimal
    currency: str | None = None


class QuoteResponse(FeeBreakdownResponse):
    """A fee breakdown plus the rules that produced it."""

    carrier: str
    carrier_rule: MarkupRuleResponse
    pickup_rule: MarkupRuleResponse | None = None
    insurance_rule: MarkupRuleResponse | None = None


# ============================================================
# Reference Data
# ============================================================


class CarrierOption(BaseModel):
    id: str
    name: str


class CurrencyOption(BaseModel):
    code: str
    name: str
    symbol: str


class MarkupTypeOption(BaseModel):
    id: str
    name: str
    description: str
