import time
import unittest
from unittest.mock import MagicMock, patch

import stripe

from app.application.interfaces.stripe_gateway import CheckoutLineItem, CheckoutSessionRequest
from app.domain.entities.subscription import SubscriptionStatus
from app.domain.errors import WebhookPayloadError, WebhookSignatureError
from app.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal
from conftest import WEBHOOK_SECRET, sign_payload, stripe_event


class TestStripeGatewayReal(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.gateway = StripeGatewayReal(api_key="sk_test_dummy")
        self.request = CheckoutSessionRequest(
            currency="eur",
            line_items=[CheckoutLineItem(name="Wash & fold", unit_amount_cents=1250, quantity=2)],
            success_url="https://laundry.test/booking/success?session_id={CHECKOUT_SESSION_ID}",
            cancel_url="https://laundry.test/booking/b-1",
            metadata={"booking_id": "b-1", "booking_number": "BK-20260302-000001"},
            customer_email="alex.doe@example.com",
        )

    async def test_parse_signed_event(self):
        payload = stripe_event("payment_intent.succeeded", {"id": "pi_1", "metadata": {"booking_id": "b-1"}})

        event = await self.gateway.parse_webhook_event(
            payload.encode("utf-8"), sign_payload(payload), WEBHOOK_SECRET, 300
        )

        self.assertEqual(event["type"], "payment_intent.succeeded")
        self.assertEqual(event["data"]["object"]["metadata"]["booking_id"], "b-1")

    async def test_rejects_stale_signature(self):
        payload = stripe_event("payment_intent.succeeded", {"id": "pi_1"})
        old = int(time.time()) - 3600

        with self.assertRaises(WebhookSignatureError):
            await self.gateway.parse_webhook_event(
                payload.encode("utf-8"), sign_payload(payload, timestamp=old), WEBHOOK_SECRET, 300
            )

    async def test_rejects_wrong_secret(self):
        payload = stripe_event("payment_intent.succeeded", {"id": "pi_1"})

        with self.assertRaises(WebhookSignatureError):
            await self.gateway.parse_webhook_event(
                payload.encode("utf-8"), sign_payload(payload, secret="whsec_other"), WEBHOOK_SECRET, 300
            )

    async def test_signed_garbage_is_a_payload_error(self):
        payload = "not json"

        with self.assertRaises(WebhookPayloadError):
            await self.gateway.parse_webhook_event(
                payload.encode("utf-8"), sign_payload(payload), WEBHOOK_SECRET, 300
            )

    async def test_missing_secret_is_a_configuration_error(self):
        with self.assertRaises(RuntimeError):
            await self.gateway.parse_webhook_event(b"{}", "t=1,v1=abc", None, 300)

    @patch("stripe.checkout.Session.create")
    async def test_checkout_session_params(self, mock_create):
        mock_create.return_value = MagicMock(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")

        result = await self.gateway.create_checkout_session(self.request, idempotency_key="booking-checkout-b-1")

        self.assertEqual(result.session_id, "cs_test_1")
        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["idempotency_key"], "booking-checkout-b-1")
        self.assertEqual(kwargs["mode"], "payment")
        self.assertEqual(kwargs["customer_email"], "alex.doe@example.com")
        self.assertEqual(kwargs["payment_intent_data"]["metadata"]["booking_id"], "b-1")
        line = kwargs["line_items"][0]
        self.assertEqual(line["price_data"]["unit_amount"], 1250)
        self.assertEqual(line["quantity"], 2)

    @patch("stripe.checkout.Session.create")
    async def test_stripe_errors_propagate(self, mock_create):
        mock_create.side_effect = stripe.APIConnectionError("network down")

        with self.assertRaises(stripe.StripeError):
            await self.gateway.create_checkout_session(self.request, idempotency_key="booking-checkout-b-1")

    @patch("stripe.Subscription.retrieve")
    async def test_retrieve_subscription_reads_item_period(self, mock_retrieve):
        subscription = MagicMock()
        subscription.to_dict.return_value = {
            "id": "sub_1",
            "object": "subscription",
            "customer": "cus_1",
            "status": "active",
            "items": {"data": [{"current_period_start": 1772442000, "current_period_end": 1775120400}]},
            "metadata": {"userId": "user-1", "planId": "plan-monthly"},
        }
        mock_retrieve.return_value = subscription

        snapshot = await self.gateway.retrieve_subscription("sub_1")

        self.assertEqual(snapshot.status, SubscriptionStatus.ACTIVE)
        self.assertEqual(snapshot.user_id, "user-1")
        self.assertEqual(int(snapshot.current_period_end.timestamp()), 1775120400)


if __name__ == "__main__":
    unittest.main()
