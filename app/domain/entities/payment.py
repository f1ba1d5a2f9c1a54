"""SubscriptionPayment entity - one row per Stripe invoice outcome."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SubscriptionPayment:
    """Keyed by the Stripe invoice id so redelivered events never duplicate it."""

    id: str
    subscription_id: str
    stripe_invoice_id: str
    amount_cents: int
    currency: str
    status: PaymentStatus
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def amount(self) -> float:
        return self.amount_cents / 100

    def merge(self, incoming: "SubscriptionPayment", now: datetime) -> None:
        """Fold a later delivery for the same invoice into this row."""
        if self.status == PaymentStatus.SUCCEEDED and incoming.status == PaymentStatus.FAILED:
            return
        self.status = incoming.status
        self.amount_cents = incoming.amount_cents
        self.currency = incoming.currency
        self.paid_at = self.paid_at or incoming.paid_at
        self.updated_at = now
