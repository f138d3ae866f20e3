"""Payment API routes."""

from uuid import UUID

from fastapi import APIRouter, status

from shipdesk.api.dependencies import DBSession
from shipdesk.core.auth.dependencies import CurrentUser
from shipdesk.core.permissions import require_resource_permission
from shipdesk.modules.payments.schemas import (
    PaymentCreate,
    PaymentCreateResponse,
    PaymentResponse,
    SubscriptionCancel,
    SubscriptionCreate,
    SubscriptionCreateResponse,
    SubscriptionResponse,
)
from shipdesk.modules.payments.services import PaymentSvc
from shipdesk.modules.payments.webhooks import webhook_router


router = APIRouter(prefix="/payments", tags=["payments"])

# Stripe calls the webhook without a bearer token
router.include_router(webhook_router)


@router.post(
    "",
    response_model=PaymentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create payment",
    description="Create a Stripe PaymentIntent for an amount in the settlement currency.",
)
@require_resource_permission("payment", "create")
async def create_payment(
    data: PaymentCreate,
    service: PaymentSvc,
    current_user: CurrentUser,
    db: DBSession,  # noqa: ARG001
) -> PaymentCreateResponse:
    """Create a payment for the current user."""
    payment, client_secret = await service.create_payment(current_user, data)
    return PaymentCreateResponse(
        payment=PaymentResponse.model_validate(payment),
        client_secret=client_secret,
    )


@router.get(
    "",
    response_model=list[PaymentResponse],
    summary="List my payments",
)
@require_resource_permission("payment", "read")
async def list_payments(
    service: PaymentSvc,
    current_user: CurrentUser,
    db: DBSession,  # noqa: ARG001
) -> list[PaymentResponse]:
    """List the current user's payments."""
    return [PaymentResponse.model_validate(p) for p in await service.list_payments(current_user)]


# ============================================================
# Subscriptions
# ============================================================


@router.post(
    "/subscriptions",
    response_model=SubscriptionCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create subscription",
    description=(
        "Subscribe to a recurring Stripe price. The returned client secret "
        "confirms the first invoice."
    ),
)
@require_resource_permission("payment", "create")
async def create_subscription(
    data: SubscriptionCreate,
    service: PaymentSvc,
    current_user: CurrentUser,
    db: DBSession,  # noqa: ARG001
) -> SubscriptionCreateResponse:
    """Create a subscription for the current user."""
    subscription, client_secret = await service.create_subscription(current_user, data)
    return SubscriptionCreateResponse(
        subscription=SubscriptionResponse.model_validate(subscription),
        client_secret=client_secret,
    )


@router.get(
    "/subscriptions",
    response_model=list[SubscriptionResponse],
    summary="List my subscriptions",
)
@require_resource_permission("payment", "read")
async def list_subscriptions(
    service: PaymentSvc,
    current_user: CurrentUser,
    db: DBSession,  # noqa: ARG001
) -> list[SubscriptionResponse]:
    """List the current user's subscriptions, newest first."""
    return [
        SubscriptionResponse.model_validate(s)
        for s in await service.list_subscriptions(current_user)
    ]


@router.get(
    "/subscriptions/{subscription_id}",
    response_model=SubscriptionResponse,
    summary="Get subscription",
)
@require_resource_permission("payment", "read")
async def get_subscription(
    subscription_id: UUID,
    service: PaymentSvc,
    current_user: CurrentUser,
    db: DBSession,  # noqa: ARG001
) -> SubscriptionResponse:
    """Get one of the current user's subscriptions."""
    subscription = await service.get_subscription(current_user, subscription_id)
    return SubscriptionResponse.model_validate(subscription)


@router.post(
    "/subscriptions/{subscription_id}/cancel",
    response_model=SubscriptionResponse,
    summary="Cancel subscription",
    description="Cancel immediately, or at the end of the current billing period.",
)
@require_resource_permission("payment", "create")
async def cancel_subscription(
    subscription_id: UUID,
    data: SubscriptionCancel,
    service: PaymentSvc,
    current_user: CurrentUser,
    db: DBSession,  # noqa: ARG001
) -> SubscriptionResponse:
    """Cancel one of the current user's subscriptions."""
    subscription = await service.cancel_subscription(current_user, subscription_id, data)
    return SubscriptionResponse.model_validate(subscription)
