"""Stripe client wrapper for async operations.

The Stripe SDK is synchronous; every call runs in a worker thread.
"""

import asyncio
from typing import Any

import stripe

from shipdesk.config import settings


def configure_stripe() -> None:
    """Configure the Stripe SDK with API key."""
    stripe.api_key = settings.stripe_secret_key


class StripeClient:
    """Async wrapper for the Stripe operations payments need."""

    def __init__(self) -> None:
        configure_stripe()

    # ============================================================
    # Customers
    # ============================================================

    async def create_customer(
        self,
        email: str | None = None,
        name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> stripe.Customer:
        """Create a new Stripe customer."""
        return await asyncio.to_thread(
            stripe.Customer.create,
            email=email,
            name=name,
            metadata=metadata or {},
        )

    # ============================================================
    # Payment Intents
    # ============================================================

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        customer_id: str,
        description: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> stripe.PaymentIntent:
        """Create a PaymentIntent.

        Args:
            amount: Amount in the currency's minor unit (cents)
            currency: ISO currency code
            customer_id: Stripe customer id
            description: Shown on the customer's statement and dashboard
            metadata: Extra key/value pairs stored on the intent
        """
        params: dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),
            "customer": customer_id,
            "metadata": metadata or {},
            "automatic_payment_methods": {"enabled": True},
        }
        if description:
            params["description"] = description
        return await asyncio.to_thread(stripe.PaymentIntent.create, **params)

    # ============================================================
    # Prices and Subscriptions
    # ============================================================

    async def get_price(self, price_id: str) -> stripe.Price:
        """Retrieve a price; its ``product`` is left as an id."""
        return await asyncio.to_thread(stripe.Price.retrieve, price_id)

    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        trial_days: int | None = None,
        metadata: dict[str, str] | None = None,
    ) -> stripe.Subscription:
        """Create a subscription awaiting its first payment.

        The first invoice's PaymentIntent is expanded so the client can
        confirm it with its ``client_secret``.
        """
        params: dict[str, Any] = {
            "customer": customer_id,
            "items": [{"price": price_id}],
            "payment_behavior": "default_incomplete",
            "payment_settings": {"save_default_payment_method": "on_subscription"},
            "expand": ["latest_invoice.payment_intent"],
            "metadata": metadata or {},
        }
        if trial_days:
            params["trial_period_days"] = trial_days
        return await asyncio.to_thread(stripe.Subscription.create, **params)

    async def cancel_subscription(
        self, subscription_id: str, at_period_end: bool = True
    ) -> stripe.Subscription:
        """Cancel now, or flag the subscription to end with the current period."""
        if at_period_end:
            return await asyncio.to_thread(
                stripe.Subscription.modify,
                subscription_id,
                cancel_at_period_end=True,
            )
        return await asyncio.to_thread(stripe.Subscription.cancel, subscription_id)

    # ============================================================
    # Webhooks
    # ============================================================

    @staticmethod
    def construct_webhook_event(
        payload: bytes, sig_header: str, webhook_secret: str
    ) -> stripe.Event:
        """Verify a webhook signature and parse the event."""
        return stripe.Webhook.construct_event(payload, sig_header, webhook_secret)


# Singleton instance
stripe_client = StripeClient()
