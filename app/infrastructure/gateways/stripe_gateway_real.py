import asyncio
import json
import logging

import stripe

from app.application.dtos.stripe_payloads import provider_subscription
from app.application.interfaces.stripe_gateway import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    StripeGateway,
)
from app.config import get_settings
from app.domain.entities.subscription import ProviderSubscription
from app.domain.errors import WebhookPayloadError, WebhookSignatureError
from app.infrastructure.circuit_breaker import CircuitBreakerError, stripe_breaker

logger = logging.getLogger(__name__)


def _as_dict(stripe_object) -> dict:
    return stripe_object.to_dict() if hasattr(stripe_object, "to_dict") else json.loads(str(stripe_object))


class StripeGatewayReal(StripeGateway):
    def __init__(self, api_key: str | None = None) -> None:
        settings = get_settings()
        stripe.api_key = api_key or settings.stripe_api_key
        stripe.max_network_retries = settings.stripe_max_network_retries

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
        tolerance_seconds: int,
    ) -> dict:
        if not webhook_secret:
            raise RuntimeError("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature_header:
            raise WebhookSignatureError("Missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload=payload.decode("utf-8"),
                sig_header=signature_header,
                secret=webhook_secret,
                tolerance=tolerance_seconds,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError("Invalid Stripe signature") from exc
        except (ValueError, UnicodeDecodeError) as exc:
            raise WebhookPayloadError("Invalid Stripe webhook payload") from exc
        return _as_dict(event)

    async def retrieve_subscription(self, stripe_subscription_id: str) -> ProviderSubscription:
        """
        Fetch the full subscription through the circuit breaker.

        The SDK is synchronous, so the call runs in a worker thread.
        """
        try:
            subscription = await asyncio.to_thread(
                stripe_breaker.call, stripe.Subscription.retrieve, stripe_subscription_id
            )
        except CircuitBreakerError:
            logger.error(
                "Stripe circuit breaker is open - service unavailable",
                extra={"stripe_subscription_id": stripe_subscription_id},
            )
            raise
        except stripe.StripeError as e:
            logger.error(
                "Stripe API error retrieving subscription",
                exc_info=e,
                extra={"stripe_subscription_id": stripe_subscription_id},
            )
            raise
        return provider_subscription(_as_dict(subscription))

    async def create_checkout_session(
        self, request: CheckoutSessionRequest, idempotency_key: str
    ) -> CheckoutSessionResult:
        params = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": request.currency,
                        "product_data": {"name": item.name},
                        "unit_amount": item.unit_amount_cents,
                    },
                    "quantity": item.quantity,
                }
                for item in request.line_items
            ],
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "metadata": request.metadata,
            "payment_intent_data": {"metadata": request.metadata},
        }
        if request.customer_email:
            params["customer_email"] = request.customer_email
        try:
            session = await asyncio.to_thread(
                stripe_breaker.call,
                stripe.checkout.Session.create,
                idempotency_key=idempotency_key,
                **params,
            )
        except CircuitBreakerError:
            logger.error(
                "Stripe circuit breaker is open - service unavailable",
                extra={"booking_id": request.metadata.get("booking_id")},
            )
            raise
        except stripe.StripeError as e:
            logger.error(
                "Stripe API error creating checkout session",
                exc_info=e,
                extra={"booking_id": request.metadata.get("booking_id")},
            )
            raise
        return CheckoutSessionResult(session_id=session.id, url=session.url)
