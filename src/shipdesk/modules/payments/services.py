"""Payment service for business logic."""

from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any
from uuid import UUID

import stripe
import structlog
from fastapi import Depends

from shipdesk.api.dependencies import DBSession
from shipdesk.config import settings
from shipdesk.core.errors import (
    BadRequestError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from shipdesk.modules.payments.models import (
    FINISHED_SUBSCRIPTION_STATUSES,
    Payment,
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
)
from shipdesk.modules.payments.repos import PaymentRepository, SubscriptionRepository
from shipdesk.modules.payments.schemas import (
    PaymentCreate,
    SubscriptionCancel,
    SubscriptionCreate,
)
from shipdesk.modules.payments.stripe_client import stripe_client


logger = structlog.get_logger()

# PaymentIntent event -> local status
INTENT_EVENT_STATUS: dict[str, PaymentStatus] = {
    "payment_intent.processing": PaymentStatus.PROCESSING,
    "payment_intent.succeeded": PaymentStatus.SUCCEEDED,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "payment_intent.canceled": PaymentStatus.CANCELED,
}

SUBSCRIPTION_EVENTS = frozenset(
    {"customer.subscription.updated", "customer.subscription.deleted"}
)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to cents, rounding half-up."""
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _provider_unavailable(user: Any, error: stripe.StripeError) -> ServiceUnavailableError:
    logger.error("stripe_request_failed", user_id=str(user.id), error=str(error))
    return ServiceUnavailableError(
        "Payment provider unavailable",
        error_code="payment_provider_error",
    )


def _from_timestamp(value: int | None) -> datetime | None:
    return datetime.fromtimestamp(value, UTC) if value is not None else None


def _period_bounds(stripe_sub: Mapping[str, Any]) -> tuple[int | None, int | None]:
    """Current billing period of a Stripe subscription, as unix timestamps.

    Recent API versions report the period on each item instead of on the
    subscription; the first item's period is used then.
    """
    start = stripe_sub.get("current_period_start")
    end = stripe_sub.get("current_period_end")
    if start is None:
        items = (stripe_sub.get("items") or {}).get("data") or []
        if items:
            start = items[0].get("current_period_start")
            end = items[0].get("current_period_end")
    return start, end


def _client_secret(stripe_sub: Mapping[str, Any]) -> str | None:
    """The secret confirming the first invoice, if one is due."""
    invoice = stripe_sub.get("latest_invoice")
    if not isinstance(invoice, Mapping):
        return None
    for key in ("confirmation_secret", "payment_intent"):
        source = invoice.get(key)
        if isinstance(source, Mapping) and source.get("client_secret"):
            return source["client_secret"]
    return None


class PaymentService:
    """Service for payment operations."""

    def __init__(self, db: DBSession) -> None:
        self.db = db
        self.repo = PaymentRepository(db)
        self.subscription_repo = SubscriptionRepository(db)
        self.stripe = stripe_client

    async def _get_or_create_customer_id(self, user: Any) -> str:
        """Return the user's Stripe customer id, creating the customer once."""
        if user.stripe_customer_id:
            return user.stripe_customer_id

        customer = await self.stripe.create_customer(
            email=user.email,
            name=user.full_name,
            metadata={"user_id": str(user.id)},
        )
        user.stripe_customer_id = customer.id
        await self.db.flush()
        logger.info("stripe_customer_created", user_id=str(user.id))
        return customer.id

    async def create_payment(self, user: Any, data: PaymentCreate) -> tuple[Payment, str | None]:
        """Create a PaymentIntent and record it as pending.

        Args:
            user: The paying user
            data: Amount in major units, currency and description

        Returns:
            Tuple of (payment, client_secret)

        Raises:
            ValidationError: If the amount is not positive
            ServiceUnavailableError: If Stripe rejects or cannot be reached
        """
        if not data.amount.is_finite() or to_minor_units(data.amount) <= 0:
            raise ValidationError(
                "Invalid payment amount",
                errors=[{"field": "amount", "message": "Must be at least 0.01"}],
            )

        currency = (data.currency or settings.settlement_currency).upper()
        amount = to_minor_units(data.amount)

        try:
            customer_id = await self._get_or_create_customer_id(user)
            intent = await self.stripe.create_payment_intent(
                amount=amount,
                currency=currency,
                customer_id=customer_id,
                description=data.description,
                metadata={"user_id": str(user.id)},
            )
        except stripe.StripeError as e:
            raise _provider_unavailable(user, e) from e

        payment = await self.repo.create(
            Payment(
                user_id=user.id,
                stripe_payment_intent_id=intent.id,
                amount=amount,
                currency=currency,
                status=PaymentStatus.PENDING.value,
                description=data.description,
            )
        )
        logger.info(
            "payment_created",
            payment_id=str(payment.id),
            user_id=str(user.id),
            amount=amount,
            currency=currency,
        )
        return payment, intent.client_secret

    async def list_payments(self, user: Any) -> list[Payment]:
        return await self.repo.list_for_user(user.id)

    async def apply_intent_event(self, event_type: str, payment_intent_id: str) -> Payment | None:
        """Update a payment from a PaymentIntent webhook event.

        Unknown event types and unknown intents are ignored.

        Returns:
            The updated payment, or None if nothing changed
        """
        new_status = INTENT_EVENT_STATUS.get(event_type)
        if new_status is None:
            logger.info("webhook_event_ignored", event_type=event_type)
            return None

        payment = await self.repo.get_by_intent_id(payment_intent_id)
        if payment is None:
            logger.warning("webhook_payment_not_found", payment_intent_id=payment_intent_id)
            return None

        payment.status = new_status.value
        payment = await self.repo.update(payment)
        logger.info(
            "payment_status_updated",
            payment_id=str(payment.id),
            status=payment.status,
        )
        return payment

    # ============================================================
    # Subscriptions
    # ============================================================

    async def create_subscription(
        self, user: Any, data: SubscriptionCreate
    ) -> tuple[Subscription, str | None]:
        """Subscribe the user to a recurring price.

        The subscription starts incomplete until its first invoice is paid
        (or trialing when ``trial_days`` is given); webhooks move it on.

        Returns:
            Tuple of (subscription, client_secret); the secret is None when
            nothing is due yet

        Raises:
            ValidationError: If the price is unknown or not recurring
            ServiceUnavailableError: If Stripe rejects or cannot be reached
        """
        try:
            price = await self.stripe.get_price(data.price_id)
        except stripe.InvalidRequestError as e:
            raise ValidationError(
                "Unknown price",
                errors=[{"field": "price_id", "message": "No such price"}],
            ) from e
        except stripe.StripeError as e:
            raise _provider_unavailable(user, e) from e

        recurring = price.get("recurring")
        if not recurring:
            raise ValidationError(
                "Price is not recurring",
                errors=[{"field": "price_id", "message": "Must be a recurring price"}],
            )

        try:
            customer_id = await self._get_or_create_customer_id(user)
            stripe_sub = await self.stripe.create_subscription(
                customer_id=customer_id,
                price_id=data.price_id,
                trial_days=data.trial_days,
                metadata={"user_id": str(user.id)},
            )
        except stripe.StripeError as e:
            raise _provider_unavailable(user, e) from e

        product = price.get("product")
        period_start, period_end = _period_bounds(stripe_sub)
        subscription = await self.subscription_repo.create(
            Subscription(
                user_id=user.id,
                stripe_subscription_id=stripe_sub["id"],
                stripe_customer_id=customer_id,
                stripe_price_id=data.price_id,
                stripe_product_id=product if isinstance(product, str) else product.get("id"),
                status=SubscriptionStatus.from_stripe(stripe_sub["status"]).value,
                amount=price.get("unit_amount") or 0,
                currency=price["currency"].upper(),
                interval=recurring["interval"],
                interval_count=recurring.get("interval_count") or 1,
                current_period_start=_from_timestamp(period_start),
                current_period_end=_from_timestamp(period_end),
                trial_start=_from_timestamp(stripe_sub.get("trial_start")),
                trial_end=_from_timestamp(stripe_sub.get("trial_end")),
            )
        )
        logger.info(
            "subscription_created",
            subscription_id=str(subscription.id),
            user_id=str(user.id),
            price_id=data.price_id,
            status=subscription.status,
        )
        return subscription, _client_secret(stripe_sub)

    async def list_subscriptions(self, user: Any) -> list[Subscription]:
        return await self.subscription_repo.list_for_user(user.id)

    async def get_subscription(self, user: Any, subscription_id: UUID) -> Subscription:
        """Get one of the user's subscriptions.

        Raises:
            NotFoundError: If it does not exist or belongs to someone else
        """
        subscription = await self.subscription_repo.get_for_user(subscription_id, user.id)
        if not subscription:
            raise NotFoundError(
                "Subscription not found",
                resource="subscription",
                resource_id=str(subscription_id),
            )
        return subscription

    async def cancel_subscription(
        self, user: Any, subscription_id: UUID, data: SubscriptionCancel
    ) -> Subscription:
        """Cancel now, or at the end of the current period.

        Raises:
            NotFoundError: If it does not exist or belongs to someone else
            BadRequestError: If it is already canceled
            ServiceUnavailableError: If Stripe rejects or cannot be reached
        """
        subscription = await self.get_subscription(user, subscription_id)

        if subscription.status in FINISHED_SUBSCRIPTION_STATUSES:
            raise BadRequestError(
                "Subscription is already canceled",
                error_code="subscription_already_canceled",
            )

        try:
            await self.stripe.cancel_subscription(
                subscription.stripe_subscription_id,
                at_period_end=data.at_period_end,
            )
        except stripe.StripeError as e:
            raise _provider_unavailable(user, e) from e

        subscription.cancel_at_period_end = data.at_period_end
        subscription.canceled_at = datetime.now(UTC)
        if not data.at_period_end:
            subscription.status = SubscriptionStatus.CANCELED.value

        subscription = await self.subscription_repo.update(subscription)
        logger.info(
            "subscription_canceled",
            subscription_id=str(subscription.id),
            at_period_end=data.at_period_end,
        )
        return subscription

    async def apply_subscription_event(
        self, event_type: str, stripe_sub: Mapping[str, Any]
    ) -> Subscription | None:
        """Mirror a Stripe subscription from an update or deletion event.

        Unknown event types and unknown subscriptions are ignored.

        Returns:
            The updated subscription, or None if nothing changed
        """
        if event_type not in SUBSCRIPTION_EVENTS:
            logger.info("webhook_event_ignored", event_type=event_type)
            return None

        subscription = await self.subscription_repo.get_by_stripe_id(stripe_sub["id"])
        if subscription is None:
            logger.warning(
                "webhook_subscription_not_found",
                stripe_subscription_id=stripe_sub["id"],
            )
            return None

        if event_type == "customer.subscription.deleted":
            subscription.status = SubscriptionStatus.CANCELED.value
        else:
            subscription.status = SubscriptionStatus.from_stripe(stripe_sub["status"]).value

        period_start, period_end = _period_bounds(stripe_sub)
        if period_start is not None:
            subscription.current_period_start = _from_timestamp(period_start)
            subscription.current_period_end = _from_timestamp(period_end)
        subscription.cancel_at_period_end = bool(stripe_sub.get("cancel_at_period_end"))
        if stripe_sub.get("canceled_at") is not None:
            subscription.canceled_at = _from_timestamp(stripe_sub["canceled_at"])
        subscription.trial_start = _from_timestamp(stripe_sub.get("trial_start"))
        subscription.trial_end = _from_timestamp(stripe_sub.get("trial_end"))

        subscription = await self.subscription_repo.update(subscription)
        logger.info(
            "subscription_status_updated",
            subscription_id=str(subscription.id),
            status=subscription.status,
        )
        return subscription


# Type alias for dependency injection
PaymentSvc = Annotated[PaymentService, Depends(PaymentService)]
