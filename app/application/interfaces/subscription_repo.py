from datetime import datetime
from typing import Sequence

from app.domain.entities.subscription import Subscription


class SubscriptionRepo:
    async def lock_user(self, user_id: str) -> None:
        """
        Serialize ledger changes for one user until the unit of work ends.

        Taken before reading the user's rows when activating a subscription
        or consuming a credit.
        """
        raise NotImplementedError

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Subscription | None:
        raise NotImplementedError

    async def list_live_for_user(self, user_id: str) -> Sequence[Subscription]:
        """Rows of the user with cancelled = false."""
        raise NotImplementedError

    async def soft_cancel_others(
        self,
        user_id: str,
        keep_stripe_subscription_id: str,
        reason: str,
        now: datetime,
    ) -> list[str]:
        """
        Soft-cancel every live row of the user except the one being kept.

        Returns the Stripe ids of the rows that were flipped.
        """
        raise NotImplementedError

    async def add(self, subscription: Subscription) -> None:
        raise NotImplementedError

    async def save(self, subscription: Subscription) -> None:
        """Optimistic write keyed on ``subscription.version``, like BookingRepo.save."""
        raise NotImplementedError
