"""Payment and subscription repositories."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select

from shipdesk.api.dependencies import DBSession
from shipdesk.modules.payments.models import Payment, Subscription


class PaymentRepository:
    """Repository for payment data access."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, payment: Payment) -> Payment:
        """Create a new payment record."""
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def get_by_intent_id(self, payment_intent_id: str) -> Payment | None:
        """Get payment by Stripe PaymentIntent ID."""
        result = await self.session.execute(
            select(Payment).where(Payment.stripe_payment_intent_id == payment_intent_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: UUID) -> list[Payment]:
        """List a user's payments, newest first."""
        result = await self.session.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())

    async def update(self, payment: Payment) -> Payment:
        await self.session.flush()
        await self.session.refresh(payment)
        return payment


class SubscriptionRepository:
    """Repository for subscription data access."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, subscription: Subscription) -> Subscription:
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def get_for_user(self, subscription_id: UUID, user_id: UUID) -> Subscription | None:
        """Get a subscription only if it belongs to the user."""
        result = await self.session.execute(
            select(Subscription).where(
                Subscription.id == subscription_id,
                Subscription.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Subscription | None:
        result = await self.session.execute(
            select(Subscription).where(
                Subscription.stripe_subscription_id == stripe_subscription_id
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: UUID) -> list[Subscription]:
        """List a user's subscriptions, newest first."""
        result = await self.session.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
        )
        return list(result.scalars().all())

    async def update(self, subscription: Subscription) -> Subscription:
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription


# Type alias for dependency injection
PaymentRepo = Annotated[PaymentRepository, Depends(PaymentRepository)]
