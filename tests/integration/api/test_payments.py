"""Integration tests for payment endpoints with Stripe mocked."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import stripe
from httpx import AsyncClient

from shipdesk.modules.payments.stripe_client import StripeClient
from tests.factories.user import headers_for, make_user


pytestmark = pytest.mark.integration


@pytest.fixture
def mock_stripe():
    """Replace the Stripe client used by PaymentService."""
    client = MagicMock()
    client.create_customer = AsyncMock(return_value=SimpleNamespace(id="cus_test"))
    client.create_payment_intent = AsyncMock(
        return_value=SimpleNamespace(id="pi_test", client_secret="pi_test_secret")
    )
    client.get_price = AsyncMock(
        return_value={
            "id": "price_monthly",
            "product": "prod_plan",
            "unit_amount": 2500,
            "currency": "cad",
            "recurring": {"interval": "month", "interval_count": 1},
        }
    )
    client.create_subscription = AsyncMock(
        return_value={
            "id": "sub_test",
            "status": "incomplete",
            "current_period_start": 1_790_000_000,
            "current_period_end": 1_792_592_000,
            "latest_invoice": {"payment_intent": {"client_secret": "pi_sub_secret"}},
        }
    )
    client.cancel_subscription = AsyncMock()
    with patch("shipdesk.modules.payments.services.stripe_client", client):
        yield client


def _event(event_type: str, intent_id: str) -> SimpleNamespace:
    return SimpleNamespace(
        id="evt_test",
        type=event_type,
        data=SimpleNamespace(object=SimpleNamespace(id=intent_id)),
    )


class TestPayments:
    """Tests for /api/v1/payments."""

    async def test_create_and_list_payment(
        self, client: AsyncClient, auth_headers, mock_stripe
    ):
        response = await client.post(
            "/api/v1/payments",
            json={"amount": "137.25", "description": "Shipping label"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["client_secret"] == "pi_test_secret"
        assert data["payment"]["amount"] == 13725
        assert data["payment"]["currency"] == "CAD"
        assert data["payment"]["status"] == "pending"

        listed = await client.get("/api/v1/payments", headers=auth_headers)
        assert [p["stripe_payment_intent_id"] for p in listed.json()] == ["pi_test"]

    async def test_zero_amount_rejected(self, client: AsyncClient, auth_headers, mock_stripe):
        response = await client.post(
            "/api/v1/payments", json={"amount": "0"}, headers=auth_headers
        )

        assert response.status_code == 400
        mock_stripe.create_payment_intent.assert_not_awaited()

    async def test_stripe_failure_is_service_unavailable(
        self, client: AsyncClient, auth_headers, mock_stripe
    ):
        mock_stripe.create_payment_intent.side_effect = stripe.APIConnectionError("down")

        response = await client.post(
            "/api/v1/payments", json={"amount": "10"}, headers=auth_headers
        )

        assert response.status_code == 503

    async def test_admin_without_payment_create_is_forbidden(
        self, client: AsyncClient, roles, db
    ):
        admin = await make_user(db, "plain-admin@example.com", roles["admin"])

        response = await client.post(
            "/api/v1/payments", json={"amount": "10"}, headers=headers_for(admin)
        )

        assert response.status_code == 403


class TestWebhook:
    """Tests for POST /api/v1/payments/webhooks."""

    async def test_succeeded_event_marks_payment(
        self, client: AsyncClient, auth_headers, mock_stripe
    ):
        await client.post("/api/v1/payments", json={"amount": "10"}, headers=auth_headers)

        with patch.object(
            StripeClient,
            "construct_webhook_event",
            return_value=_event("payment_intent.succeeded", "pi_test"),
        ):
            response = await client.post(
                "/api/v1/payments/webhooks",
                content=b"{}",
                headers={"Stripe-Signature": "t=1,v1=sig"},
            )

        assert response.status_code == 200
        assert response.json() == {"status": "received"}

        listed = await client.get("/api/v1/payments", headers=auth_headers)
        assert listed.json()[0]["status"] == "succeeded"

    async def test_bad_signature(self, client: AsyncClient):
        with patch.object(
            StripeClient,
            "construct_webhook_event",
            side_effect=stripe.SignatureVerificationError("bad", "t=1,v1=sig"),
        ):
            response = await client.post(
                "/api/v1/payments/webhooks",
                content=b"{}",
                headers={"Stripe-Signature": "t=1,v1=sig"},
            )

        assert response.status_code == 400
        assert response.json()["type"].endswith("/invalid_signature")

    async def test_missing_signature_header(self, client: AsyncClient):
        response = await client.post("/api/v1/payments/webhooks", content=b"{}")

        assert response.status_code == 422


def _subscription_event(event_type: str, **fields) -> SimpleNamespace:
    return SimpleNamespace(
        id="evt_sub",
        type=event_type,
        data=SimpleNamespace(object={"id": "sub_test", "status": "active"} | fields),
    )


async def _post_webhook(client: AsyncClient, event: SimpleNamespace):
    with patch.object(StripeClient, "construct_webhook_event", return_value=event):
        return await client.post(
            "/api/v1/payments/webhooks",
            content=b"{}",
            headers={"Stripe-Signature": "t=1,v1=sig"},
        )


class TestSubscriptions:
    """Tests for /api/v1/payments/subscriptions."""

    async def _subscribe(self, client: AsyncClient, headers) -> dict:
        response = await client.post(
            "/api/v1/payments/subscriptions",
            json={"price_id": "price_monthly"},
            headers=headers,
        )
        assert response.status_code == 201
        return response.json()

    async def test_create_get_and_list(self, client: AsyncClient, auth_headers, mock_stripe):
        data = await self._subscribe(client, auth_headers)

        assert data["client_secret"] == "pi_sub_secret"
        subscription = data["subscription"]
        assert subscription["status"] == "incomplete"
        assert subscription["amount"] == 2500
        assert subscription["currency"] == "CAD"
        assert subscription["interval"] == "month"
        assert subscription["current_period_end"].startswith("2026-10-21")

        fetched = await client.get(
            f"/api/v1/payments/subscriptions/{subscription['id']}", headers=auth_headers
        )
        assert fetched.status_code == 200
        assert fetched.json()["stripe_subscription_id"] == "sub_test"

        listed = await client.get("/api/v1/payments/subscriptions", headers=auth_headers)
        assert [s["id"] for s in listed.json()] == [subscription["id"]]

    async def test_one_time_price_rejected(
        self, client: AsyncClient, auth_headers, mock_stripe
    ):
        mock_stripe.get_price.return_value = {
            "id": "price_once",
            "unit_amount": 500,
            "currency": "cad",
            "recurring": None,
        }

        response = await client.post(
            "/api/v1/payments/subscriptions",
            json={"price_id": "price_once"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        mock_stripe.create_subscription.assert_not_awaited()

    async def test_cancel_then_cancel_again(
        self, client: AsyncClient, auth_headers, mock_stripe
    ):
        subscription_id = (await self._subscribe(client, auth_headers))["subscription"]["id"]
        url = f"/api/v1/payments/subscriptions/{subscription_id}/cancel"

        response = await client.post(url, json={"at_period_end": False}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "canceled"
        mock_stripe.cancel_subscription.assert_awaited_once_with(
            "sub_test", at_period_end=False
        )

        again = await client.post(url, json={}, headers=auth_headers)

        assert again.status_code == 400
        assert again.json()["type"].endswith("/subscription_already_canceled")

    async def test_other_users_subscription_not_found(
        self, client: AsyncClient, auth_headers, roles, db, mock_stripe
    ):
        subscription_id = (await self._subscribe(client, auth_headers))["subscription"]["id"]
        other = await make_user(db, "other-payer@example.com", roles["user"])

        response = await client.get(
            f"/api/v1/payments/subscriptions/{subscription_id}", headers=headers_for(other)
        )

        assert response.status_code == 404

    async def test_updated_webhook_activates(
        self, client: AsyncClient, auth_headers, mock_stripe
    ):
        subscription_id = (await self._subscribe(client, auth_headers))["subscription"]["id"]

        response = await _post_webhook(
            client,
            _subscription_event("customer.subscription.updated", cancel_at_period_end=True),
        )

        assert response.status_code == 200
        fetched = await client.get(
            f"/api/v1/payments/subscriptions/{subscription_id}", headers=auth_headers
        )
        assert fetched.json()["status"] == "active"
        assert fetched.json()["cancel_at_period_end"] is True

    async def test_deleted_webhook_cancels(
        self, client: AsyncClient, auth_headers, mock_stripe
    ):
        subscription_id = (await self._subscribe(client, auth_headers))["subscription"]["id"]

        await _post_webhook(client, _subscription_event("customer.subscription.deleted"))

        fetched = await client.get(
            f"/api/v1/payments/subscriptions/{subscription_id}", headers=auth_headers
        )
        assert fetched.json()["status"] == "canceled"
