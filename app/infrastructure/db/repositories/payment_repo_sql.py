from typing import Any, Mapping, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.payment_repo import PaymentRepo
from app.domain.entities.payment import PaymentStatus, SubscriptionPayment
from app.infrastructure.db.repositories._mapping import as_utc
from app.infrastructure.db.tables import subscription_payments


class PaymentRepoSQL(PaymentRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_invoice(self, stripe_invoice_id: str) -> SubscriptionPayment | None:
        result = await self._session.execute(
            select(subscription_payments).where(
                subscription_payments.c.stripe_invoice_id == stripe_invoice_id
            )
        )
        row = result.mappings().first()
        return self._map_payment(row) if row else None

    async def add(self, payment: SubscriptionPayment) -> None:
        await self._session.execute(
            insert(subscription_payments).values(
                id=payment.id,
                subscription_id=payment.subscription_id,
                stripe_invoice_id=payment.stripe_invoice_id,
                amount_cents=payment.amount_cents,
                currency=payment.currency,
                status=payment.status.value,
                paid_at=payment.paid_at,
                created_at=payment.created_at,
                updated_at=payment.updated_at,
            )
        )

    async def save(self, payment: SubscriptionPayment) -> None:
        await self._session.execute(
            update(subscription_payments)
            .where(subscription_payments.c.id == payment.id)
            .values(
                amount_cents=payment.amount_cents,
                currency=payment.currency,
                status=payment.status.value,
                paid_at=payment.paid_at,
                updated_at=payment.updated_at,
            )
        )

    async def list_for_subscription(self, subscription_id: str) -> Sequence[SubscriptionPayment]:
        result = await self._session.execute(
            select(subscription_payments)
            .where(subscription_payments.c.subscription_id == subscription_id)
            .order_by(subscription_payments.c.created_at)
        )
        return [self._map_payment(row) for row in result.mappings().all()]

    def _map_payment(self, row: Mapping[str, Any]) -> SubscriptionPayment:
        return SubscriptionPayment(
            id=row["id"],
            subscription_id=row["subscription_id"],
            stripe_invoice_id=row["stripe_invoice_id"],
            amount_cents=row["amount_cents"],
            currency=row["currency"],
            status=PaymentStatus(row["status"]),
            paid_at=as_utc(row["paid_at"]),
            created_at=as_utc(row["created_at"]),
            updated_at=as_utc(row["updated_at"]),
        )
