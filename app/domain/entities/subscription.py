"""Subscription entity - a user's recurring plan, mirrored from Stripe."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SubscriptionStatus(str, Enum):
    """Stripe subscription states (note Stripe's 'canceled' spelling)."""

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"

    @classmethod
    def from_provider(cls, value: str | None) -> "SubscriptionStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.INCOMPLETE


# Statuses that entitle the user to weekly booking credits.
CREDIT_ELIGIBLE_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


@dataclass(frozen=True)
class ProviderSubscription:
    """The fields of a provider subscription object this system keeps."""

    stripe_subscription_id: str
    stripe_customer_id: str | None
    status: SubscriptionStatus
    current_period_start: datetime | None
    current_period_end: datetime | None
    cancel_at_period_end: bool = False
    canceled_at: datetime | None = None
    plan_id: str | None = None
    user_id: str | None = None
    created_at: datetime | None = None


@dataclass
class Subscription:
    """
    Local ledger row for a provider subscription.

    ``cancelled`` is the soft-delete flag: at most one row per user has it
    unset. Once set it is never cleared and the status stays ``canceled``,
    whatever the provider reports later.
    """

    id: str
    user_id: str
    plan_id: str
    stripe_subscription_id: str
    status: SubscriptionStatus
    stripe_customer_id: str | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    canceled_at: datetime | None = None
    cancelled: bool = False
    cancellation_reason: str | None = None
    provider_created_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    @property
    def grants_credits(self) -> bool:
        return not self.cancelled and self.status in CREDIT_ELIGIBLE_STATUSES

    def started_after(self, snapshot: ProviderSubscription) -> bool:
        """True when this row was created at Stripe after ``snapshot``. Unknown times never win."""
        if self.provider_created_at is None or snapshot.created_at is None:
            return False
        return self.provider_created_at > snapshot.created_at

    def soft_cancel(self, reason: str, now: datetime) -> None:
        if self.cancelled and self.status == SubscriptionStatus.CANCELED:
            return
        self.cancelled = True
        self.status = SubscriptionStatus.CANCELED
        self.canceled_at = self.canceled_at or now
        self.cancellation_reason = self.cancellation_reason or reason
        self.updated_at = now

    def apply_provider_state(self, snapshot: ProviderSubscription, now: datetime) -> None:
        if self.cancelled or snapshot.status == SubscriptionStatus.CANCELED:
            self.cancelled = True
            self.status = SubscriptionStatus.CANCELED
        else:
            self.status = snapshot.status
        self.stripe_customer_id = snapshot.stripe_customer_id or self.stripe_customer_id
        self.current_period_start = snapshot.current_period_start
        self.current_period_end = snapshot.current_period_end
        self.cancel_at_period_end = snapshot.cancel_at_period_end
        self.canceled_at = snapshot.canceled_at or self.canceled_at
        self.provider_created_at = snapshot.created_at or self.provider_created_at
        self.updated_at = now

    @classmethod
    def from_provider(
        cls,
        subscription_id: str,
        user_id: str,
        plan_id: str,
        snapshot: ProviderSubscription,
        now: datetime,
    ) -> "Subscription":
        subscription = cls(
            id=subscription_id,
            user_id=user_id,
            plan_id=plan_id,
            stripe_subscription_id=snapshot.stripe_subscription_id,
            status=snapshot.status,
            created_at=now,
        )
        subscription.apply_provider_state(snapshot, now)
        return subscription
