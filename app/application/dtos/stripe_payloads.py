"""Helpers that read Stripe objects (as plain dicts) into domain values."""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from app.domain.entities.subscription import ProviderSubscription, SubscriptionStatus


def from_unix(value: Any) -> datetime | None:
    """Stripe timestamps are Unix seconds."""
    if value is None or value == "":
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def object_id(value: Any) -> str | None:
    """Stripe fields may hold an id or an expanded object."""
    if isinstance(value, Mapping):
        return value.get("id")
    return value or None


def metadata_value(metadata: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = metadata.get(key)
        if value:
            return str(value)
    return None


def _first_item(subscription: Mapping[str, Any]) -> Mapping[str, Any]:
    items = subscription.get("items") or {}
    data = items.get("data") if isinstance(items, Mapping) else None
    return data[0] if data else {}


def provider_subscription(subscription: Mapping[str, Any]) -> ProviderSubscription:
    """
    Newer API versions moved the billing period onto the subscription items,
    so the first item is used when the top-level fields are missing.
    """
    item = _first_item(subscription)
    metadata = subscription.get("metadata") or {}
    return ProviderSubscription(
        stripe_subscription_id=subscription["id"],
        stripe_customer_id=object_id(subscription.get("customer")),
        status=SubscriptionStatus.from_provider(subscription.get("status")),
        current_period_start=from_unix(
            subscription.get("current_period_start") or item.get("current_period_start")
        ),
        current_period_end=from_unix(
            subscription.get("current_period_end") or item.get("current_period_end")
        ),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        canceled_at=from_unix(subscription.get("canceled_at")),
        plan_id=metadata_value(metadata, "planId", "plan_id"),
        user_id=metadata_value(metadata, "userId", "user_id"),
        created_at=from_unix(subscription.get("created")),
    )


def invoice_subscription_id(invoice: Mapping[str, Any]) -> str | None:
    direct = object_id(invoice.get("subscription"))
    if direct:
        return direct
    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return object_id(details.get("subscription"))


def invoice_paid_at(invoice: Mapping[str, Any]) -> datetime | None:
    transitions = invoice.get("status_transitions") or {}
    return from_unix(transitions.get("paid_at"))
