"""Stripe webhook handler."""

from typing import Annotated

import stripe
import structlog
from fastapi import APIRouter, Header, Request, status

from shipdesk.config import settings
from shipdesk.core.errors import BadRequestError
from shipdesk.modules.payments.schemas import WebhookAck
from shipdesk.modules.payments.services import PaymentSvc
from shipdesk.modules.payments.stripe_client import StripeClient


logger = structlog.get_logger()

webhook_router = APIRouter()


@webhook_router.post(
    "/webhooks",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
    summary="Stripe webhook endpoint",
    include_in_schema=False,
)
async def stripe_webhook(
    request: Request,
    service: PaymentSvc,
    stripe_signature: Annotated[str, Header(alias="Stripe-Signature")],
) -> WebhookAck:
    """Verify and apply a Stripe event."""
    payload = await request.body()

    try:
        event = StripeClient.construct_webhook_event(
            payload=payload,
            sig_header=stripe_signature,
            webhook_secret=settings.stripe_webhook_secret or "",
        )
    except ValueError as e:
        logger.warning("webhook_invalid_payload", error=str(e))
        raise BadRequestError("Invalid payload", error_code="invalid_payload") from e
    except stripe.SignatureVerificationError as e:
        logger.warning("webhook_invalid_signature")
        raise BadRequestError("Invalid signature", error_code="invalid_signature") from e

    logger.info("webhook_received", event_type=event.type, event_id=event.id)
    if event.type.startswith("payment_intent."):
        await service.apply_intent_event(event.type, event.data.object.id)
    elif event.type.startswith("customer.subscription."):
        await service.apply_subscription_event(event.type, event.data.object)

    return WebhookAck()
