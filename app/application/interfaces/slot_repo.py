from datetime import date
from typing import Sequence

from app.domain.entities.logistic_slot import LogisticSlot, SlotRole


class SlotRepo:
    async def get(self, slot_id: str) -> LogisticSlot | None:
        raise NotImplementedError

    async def list_open(
        self,
        role: SlotRole,
        start_date: date,
        end_date: date | None = None,
    ) -> Sequence[LogisticSlot]:
        """Open slots of one role in [start_date, end_date], ordered by date then start time."""
        raise NotImplementedError

    async def add(self, slot: LogisticSlot) -> None:
        raise NotImplementedError
