from datetime import date
from typing import Any, Mapping, Sequence

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.slot_repo import SlotRepo
from app.domain.entities.logistic_slot import LogisticSlot, SlotRole
from app.infrastructure.db.repositories._mapping import as_utc
from app.infrastructure.db.tables import logistic_slots


class SlotRepoSQL(SlotRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, slot_id: str) -> LogisticSlot | None:
        result = await self._session.execute(
            select(logistic_slots).where(logistic_slots.c.id == slot_id)
        )
        row = result.mappings().first()
        return self._map_slot(row) if row else None

    async def list_open(
        self,
        role: SlotRole,
        start_date: date,
        end_date: date | None = None,
    ) -> Sequence[LogisticSlot]:
        stmt = select(logistic_slots).where(
            logistic_slots.c.role == role.value,
            logistic_slots.c.is_open.is_(True),
            logistic_slots.c.slot_date >= start_date,
        )
        if end_date is not None:
            stmt = stmt.where(logistic_slots.c.slot_date <= end_date)
        stmt = stmt.order_by(logistic_slots.c.slot_date, logistic_slots.c.start_time)
        result = await self._session.execute(stmt)
        return [self._map_slot(row) for row in result.mappings().all()]

    async def add(self, slot: LogisticSlot) -> None:
        await self._session.execute(
            insert(logistic_slots).values(
                id=slot.id,
                role=slot.role.value,
                slot_date=slot.slot_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                is_open=slot.is_open,
                created_at=slot.created_at,
            )
        )

    def _map_slot(self, row: Mapping[str, Any]) -> LogisticSlot:
        return LogisticSlot(
            id=row["id"],
            role=SlotRole(row["role"]),
            slot_date=row["slot_date"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            is_open=bool(row["is_open"]),
            created_at=as_utc(row["created_at"]),
        )
