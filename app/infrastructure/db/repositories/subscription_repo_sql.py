from datetime import datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.subscription_repo import SubscriptionRepo
from app.domain.entities.subscription import Subscription, SubscriptionStatus
from app.infrastructure.db.repositories._mapping import as_utc
from app.domain.errors import ConcurrentModificationError
from app.infrastructure.db.tables import subscription_ledger_locks, subscriptions


class SubscriptionRepoSQL(SubscriptionRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def lock_user(self, user_id: str) -> None:
        # The UPDATE takes a row lock held until commit; the first use inserts the row.
        result = await self._session.execute(
            update(subscription_ledger_locks)
            .where(subscription_ledger_locks.c.user_id == user_id)
            .values(version=subscription_ledger_locks.c.version + 1, updated_at=func.now())
        )
        if result.rowcount:
            return
        try:
            await self._session.execute(
                insert(subscription_ledger_locks).values(
                    user_id=user_id, version=1, updated_at=func.now()
                )
            )
        except IntegrityError as exc:
            # Another unit of work created the row first.
            raise ConcurrentModificationError("Subscription ledger", user_id) from exc

    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Subscription | None:
        result = await self._session.execute(
            select(subscriptions).where(
                subscriptions.c.stripe_subscription_id == stripe_subscription_id
            )
        )
        row = result.mappings().first()
        return self._map_subscription(row) if row else None

    async def list_live_for_user(self, user_id: str) -> Sequence[Subscription]:
        result = await self._session.execute(
            select(subscriptions)
            .where(subscriptions.c.user_id == user_id, subscriptions.c.cancelled.is_(False))
            .order_by(subscriptions.c.created_at)
        )
        return [self._map_subscription(row) for row in result.mappings().all()]

    async def soft_cancel_others(
        self,
        user_id: str,
        keep_stripe_subscription_id: str,
        reason: str,
        now: datetime,
    ) -> list[str]:
        condition = (
            (subscriptions.c.user_id == user_id)
            & subscriptions.c.cancelled.is_(False)
            & (subscriptions.c.stripe_subscription_id != keep_stripe_subscription_id)
        )
        result = await self._session.execute(
            select(subscriptions.c.stripe_subscription_id).where(condition)
        )
        superseded = list(result.scalars().all())
        if not superseded:
            return []
        await self._session.execute(
            update(subscriptions)
            .where(condition)
            .values(
                cancelled=True,
                status=SubscriptionStatus.CANCELED.value,
                canceled_at=func.coalesce(subscriptions.c.canceled_at, now),
                cancellation_reason=func.coalesce(subscriptions.c.cancellation_reason, reason),
                updated_at=now,
                version=subscriptions.c.version + 1,
            )
        )
        return superseded

    async def add(self, subscription: Subscription) -> None:
        await self._session.execute(
            insert(subscriptions).values(
                id=subscription.id, version=subscription.version, **self._values(subscription)
            )
        )

    async def save(self, subscription: Subscription) -> None:
        values = self._values(subscription)
        # Soft-cancellation is one way.
        values["cancelled"] = subscriptions.c.cancelled | subscription.cancelled
        result = await self._session.execute(
            update(subscriptions)
            .where(
                subscriptions.c.id == subscription.id,
                subscriptions.c.version == subscription.version,
            )
            .values(**values, version=subscriptions.c.version + 1)
        )
        if result.rowcount == 0:
            raise ConcurrentModificationError("Subscription", subscription.id)
        subscription.version += 1

    def _values(self, subscription: Subscription) -> dict[str, Any]:
        return {
            "user_id": subscription.user_id,
            "plan_id": subscription.plan_id,
            "status": subscription.status.value,
            "stripe_subscription_id": subscription.stripe_subscription_id,
            "stripe_customer_id": subscription.stripe_customer_id,
            "current_period_start": subscription.current_period_start,
            "current_period_end": subscription.current_period_end,
            "cancel_at_period_end": subscription.cancel_at_period_end,
            "canceled_at": subscription.canceled_at,
            "cancelled": subscription.cancelled,
            "cancellation_reason": subscription.cancellation_reason,
            "stripe_created_at": subscription.provider_created_at,
            "created_at": subscription.created_at,
            "updated_at": subscription.updated_at,
        }

    def _map_subscription(self, row: Mapping[str, Any]) -> Subscription:
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            plan_id=row["plan_id"],
            stripe_subscription_id=row["stripe_subscription_id"],
            status=SubscriptionStatus.from_provider(row["status"]),
            stripe_customer_id=row["stripe_customer_id"],
            current_period_start=as_utc(row["current_period_start"]),
            current_period_end=as_utc(row["current_period_end"]),
            cancel_at_period_end=bool(row["cancel_at_period_end"]),
            canceled_at=as_utc(row["canceled_at"]),
            cancelled=bool(row["cancelled"]),
            cancellation_reason=row["cancellation_reason"],
            provider_created_at=as_utc(row["stripe_created_at"]),
            created_at=as_utc(row["created_at"]),
            updated_at=as_utc(row["updated_at"]),
            version=row["version"],
        )
