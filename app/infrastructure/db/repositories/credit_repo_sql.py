from datetime import date
from typing import Any, Mapping, Sequence

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.credit_repo import CreditUsageRepo
from app.domain.entities.credit import CreditUsage
from app.infrastructure.db.repositories._mapping import as_utc
from app.infrastructure.db.tables import credit_usages


class CreditUsageRepoSQL(CreditUsageRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count_used(self, user_id: str, week_start_date: date) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(credit_usages)
            .where(
                credit_usages.c.user_id == user_id,
                credit_usages.c.week_start_date == week_start_date,
            )
        )
        return int(result.scalar_one())

    async def add(self, usage: CreditUsage) -> None:
        await self._session.execute(
            insert(credit_usages).values(
                id=usage.id,
                user_id=usage.user_id,
                subscription_id=usage.subscription_id,
                booking_id=usage.booking_id,
                week_start_date=usage.week_start_date,
                credits_before=usage.credits_before,
                credits_after=usage.credits_after,
                booking_weight_kg=usage.booking_weight_kg,
                amount_saved_cents=usage.amount_saved_cents,
                currency=usage.currency,
                used_at=usage.used_at,
            )
        )

    async def list_for_user(self, user_id: str, limit: int) -> Sequence[CreditUsage]:
        result = await self._session.execute(
            select(credit_usages)
            .where(credit_usages.c.user_id == user_id)
            .order_by(credit_usages.c.used_at.desc())
            .limit(limit)
        )
        return [self._map_usage(row) for row in result.mappings().all()]

    async def total_saved_cents(self, user_id: str) -> int:
        result = await self._session.execute(
            select(func.coalesce(func.sum(credit_usages.c.amount_saved_cents), 0)).where(
                credit_usages.c.user_id == user_id
            )
        )
        return int(result.scalar_one())

    def _map_usage(self, row: Mapping[str, Any]) -> CreditUsage:
        return CreditUsage(
            id=row["id"],
            user_id=row["user_id"],
            subscription_id=row["subscription_id"],
            booking_id=row["booking_id"],
            week_start_date=row["week_start_date"],
            credits_before=row["credits_before"],
            credits_after=row["credits_after"],
            booking_weight_kg=row["booking_weight_kg"],
            amount_saved_cents=row["amount_saved_cents"],
            used_at=as_utc(row["used_at"]),
            currency=row["currency"],
        )
