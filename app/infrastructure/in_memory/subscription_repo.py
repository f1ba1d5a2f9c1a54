import copy
from datetime import datetime
from typing import Sequence

from app.application.interfaces.subscription_repo import SubscriptionRepo
from app.domain.entities.subscription import Subscription
from app.domain.errors import ConcurrentModificationError
from app.infrastructure.in_memory._store import SnapshotStore


class InMemorySubscriptionRepo(SubscriptionRepo, SnapshotStore):
    def __init__(self) -> None:
        self.subscriptions: dict[str, Subscription] = {}

    async def lock_user(self, user_id: str) -> None:
        # InMemoryTransactionManager already runs one unit of work at a time.
        return None

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Subscription | None:
        for subscription in self.subscriptions.values():
            if subscription.stripe_subscription_id == stripe_subscription_id:
                return copy.deepcopy(subscription)
        return None

    async def list_live_for_user(self, user_id: str) -> Sequence[Subscription]:
        return [
            copy.deepcopy(subscription)
            for subscription in self.subscriptions.values()
            if subscription.user_id == user_id and not subscription.cancelled
        ]

    async def soft_cancel_others(
        self,
        user_id: str,
        keep_stripe_subscription_id: str,
        reason: str,
        now: datetime,
    ) -> list[str]:
        superseded = []
        for subscription in self.subscriptions.values():
            if (
                subscription.user_id == user_id
                and not subscription.cancelled
                and subscription.stripe_subscription_id != keep_stripe_subscription_id
            ):
                subscription.soft_cancel(reason, now)
                subscription.version += 1
                superseded.append(subscription.stripe_subscription_id)
        return superseded

    async def add(self, subscription: Subscription) -> None:
        if await self.get_by_stripe_id(subscription.stripe_subscription_id):
            raise ValueError(
                f"Subscription already exists: {subscription.stripe_subscription_id}"
            )
        self.subscriptions[subscription.id] = copy.deepcopy(subscription)

    async def save(self, subscription: Subscription) -> None:
        stored = self.subscriptions.get(subscription.id)
        if stored is None:
            raise ValueError(f"Subscription not found: {subscription.id}")
        if stored.version != subscription.version:
            raise ConcurrentModificationError("Subscription", subscription.id)
        subscription.version += 1
        updated = copy.deepcopy(subscription)
        updated.cancelled = stored.cancelled or subscription.cancelled
        self.subscriptions[subscription.id] = updated
