from dataclasses import dataclass, field
from typing import Any

from app.domain.entities.subscription import ProviderSubscription


@dataclass
class CheckoutLineItem:
    name: str
    unit_amount_cents: int
    quantity: int


@dataclass
class CheckoutSessionRequest:
    currency: str
    line_items: list[CheckoutLineItem]
    success_url: str
    cancel_url: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_email: str | None = None


@dataclass
class CheckoutSessionResult:
    session_id: str
    url: str


class StripeGateway:
    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
        tolerance_seconds: int,
    ) -> dict[str, Any]:
        """Verify the signature over the raw body and return the event as a dict.

        Raises WebhookSignatureError or WebhookPayloadError.
        """
        raise NotImplementedError

    async def retrieve_subscription(self, stripe_subscription_id: str) -> ProviderSubscription:
        raise NotImplementedError

    async def create_checkout_session(
        self, request: CheckoutSessionRequest, idempotency_key: str
    ) -> CheckoutSessionResult:
        raise NotImplementedError
