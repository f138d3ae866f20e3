"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shipdesk.core.constants import (
    CURRENCY_CODE_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_STRIPE_ID_LENGTH,
    MAX_TRIAL_DAYS,
)


class PaymentCreate(BaseModel):
    """Charge an amount in major units (e.g. a quoted total fee).

    ``currency`` defaults to the settlement currency.
    """

    amount: Decimal
    currency: str | None = Field(
        None, min_length=CURRENCY_CODE_LENGTH, max_length=CURRENCY_CODE_LENGTH
    )
    description: str | None = Field(None, max_length=MAX_DESCRIPTION_LENGTH)


class PaymentResponse(BaseModel):
    """Schema for payment response data. ``amount`` is in minor units."""

    id: UUID
    stripe_payment_intent_id: str
    amount: int
    currency: str
    status: str
    description: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentCreateResponse(BaseModel):
    """A created payment and the secret the client confirms it with."""

    payment: PaymentResponse
    client_secret: str | None


class WebhookAck(BaseModel):
    status: str = "received"


# ============================================================
# Subscriptions
# ============================================================


class SubscriptionCreate(BaseModel):
    """Subscribe the current user to a recurring Stripe price."""

    price_id: str = Field(..., min_length=1, max_length=MAX_STRIPE_ID_LENGTH)
    trial_days: int | None = Field(None, ge=1, le=MAX_TRIAL_DAYS)


class SubscriptionCancel(BaseModel):
    """``at_period_end`` keeps the subscription running until the period ends."""

    at_period_end: bool = True


class SubscriptionResponse(BaseModel):
    """Schema for subscription response data. ``amount`` is in minor units."""

    id: UUID
    stripe_subscription_id: str
    stripe_price_id: str
    status: str
    amount: int
    currency: str
    interval: str
    interval_count: int
    current_period_start: datetime | None
    current_period_end: datetime | None
    cancel_at_period_end: bool
    canceled_at: datetime | None
    trial_start: datetime | None
    trial_end: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubscriptionCreateResponse(BaseModel):
    """A created subscription and the secret for confirming its first invoice."""

    subscription: SubscriptionResponse
    client_secret: str | None
