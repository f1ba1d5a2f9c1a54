import json
from uuid import uuid4

import stripe

from app.application.dtos.stripe_payloads import provider_subscription
from app.application.interfaces.stripe_gateway import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    StripeGateway,
)
from app.domain.entities.subscription import ProviderSubscription
from app.domain.errors import WebhookPayloadError, WebhookSignatureError


class StubStripeGateway(StripeGateway):
    """
    Offline gateway for development and tests.

    Webhook signatures are still verified with Stripe's own scheme, so a
    payload signed with the configured secret behaves exactly as in
    production. Subscriptions returned by ``retrieve_subscription`` are the
    ones registered with ``register_subscription``.
    """

    def __init__(self) -> None:
        self.subscriptions: dict[str, dict] = {}
        self.checkout_sessions: list[tuple[CheckoutSessionRequest, CheckoutSessionResult]] = []
        self._sessions_by_key: dict[str, CheckoutSessionResult] = {}

    def register_subscription(self, subscription: dict) -> None:
        self.subscriptions[subscription["id"]] = subscription

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
        tolerance_seconds: int,
    ) -> dict:
        if not webhook_secret:
            raise RuntimeError("STRIPE_WEBHOOK_SECRET is not configured")
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookPayloadError("Webhook body is not valid UTF-8") from exc
        try:
            stripe.WebhookSignature.verify_header(
                body, signature_header, webhook_secret, tolerance_seconds
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError("Invalid Stripe signature") from exc
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise WebhookPayloadError("Invalid webhook payload") from exc

    async def retrieve_subscription(self, stripe_subscription_id: str) -> ProviderSubscription:
        subscription = self.subscriptions.get(stripe_subscription_id)
        if subscription is None:
            raise LookupError(f"Unknown Stripe subscription: {stripe_subscription_id}")
        return provider_subscription(subscription)

    async def create_checkout_session(
        self, request: CheckoutSessionRequest, idempotency_key: str
    ) -> CheckoutSessionResult:
        existing = self._sessions_by_key.get(idempotency_key)
        if existing:
            return existing
        session_id = f"cs_test_{uuid4().hex[:24]}"
        result = CheckoutSessionResult(
            session_id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}"
        )
        self._sessions_by_key[idempotency_key] = result
        self.checkout_sessions.append((request, result))
        return result
