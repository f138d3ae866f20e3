"""Payment and subscription database models."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shipdesk.core.constants import (
    CURRENCY_CODE_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_STRIPE_ID_LENGTH,
)
from shipdesk.core.database.base import Base, TimestampMixin, UUIDMixin


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class Payment(Base, UUIDMixin, TimestampMixin):
    """A charge for a computed fee, backed by a Stripe PaymentIntent.

    Attributes:
        user_id: The paying user
        stripe_payment_intent_id: The PaymentIntent id
        amount: Amount in minor units (cents)
        currency: ISO currency code
        status: Mirrors the PaymentIntent outcome
        description: Free-form label
    """

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stripe_payment_intent_id: Mapped[str] = mapped_column(
        String(MAX_STRIPE_ID_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(CURRENCY_CODE_LENGTH), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
    )
    description: Mapped[str | None] = mapped_column(
        String(MAX_DESCRIPTION_LENGTH),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, status={self.status}, amount={self.amount})>"


class SubscriptionStatus(StrEnum):
    """Subscription states, as Stripe names them."""

    ACTIVE = "active"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAST_DUE = "past_due"
    TRIALING = "trialing"
    UNPAID = "unpaid"

    @classmethod
    def from_stripe(cls, value: str) -> "SubscriptionStatus":
        """Map a Stripe status; states this service does not track become incomplete."""
        try:
            return cls(value)
        except ValueError:
            return cls.INCOMPLETE


# A subscription in one of these states cannot be canceled again
FINISHED_SUBSCRIPTION_STATUSES = frozenset(
    {SubscriptionStatus.CANCELED, SubscriptionStatus.INCOMPLETE_EXPIRED}
)


class Subscription(Base, UUIDMixin, TimestampMixin):
    """A recurring Stripe subscription held by a user.

    Attributes:
        user_id: The subscribing user
        stripe_subscription_id: The Stripe subscription id
        stripe_customer_id: The Stripe customer billed
        stripe_price_id: The recurring price subscribed to
        stripe_product_id: The product the price belongs to
        status: Mirrors the Stripe subscription status
        amount: Price per interval in minor units (cents)
        currency: ISO currency code
        interval: Billing interval (day, week, month or year)
        interval_count: Number of intervals between bills
        current_period_start: Start of the current billing period
        current_period_end: End of the current billing period
        cancel_at_period_end: Whether the subscription ends with this period
        canceled_at: When cancellation was requested
        trial_start: Start of the trial, if any
        trial_end: End of the trial, if any
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_subscriptions_amount_non_negative"),
        CheckConstraint("interval_count > 0", name="ck_subscriptions_interval_count_positive"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stripe_subscription_id: Mapped[str] = mapped_column(
        String(MAX_STRIPE_ID_LENGTH),
        unique=True,
        nullable=False,
        index=True,
    )
    stripe_customer_id: Mapped[str] = mapped_column(
        String(MAX_STRIPE_ID_LENGTH),
        nullable=False,
    )
    stripe_price_id: Mapped[str] = mapped_column(String(MAX_STRIPE_ID_LENGTH), nullable=False)
    stripe_product_id: Mapped[str | None] = mapped_column(
        String(MAX_STRIPE_ID_LENGTH),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SubscriptionStatus.INCOMPLETE.value,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(CURRENCY_CODE_LENGTH), nullable=False)
    interval: Mapped[str] = mapped_column(String(10), nullable=False)
    interval_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    trial_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    trial_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, status={self.status}, user_id={self.user_id})>"
