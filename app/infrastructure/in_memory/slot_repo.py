from datetime import date
from typing import Sequence

from app.application.interfaces.slot_repo import SlotRepo
from app.domain.entities.logistic_slot import LogisticSlot, SlotRole
from app.infrastructure.in_memory._store import SnapshotStore


class InMemorySlotRepo(SlotRepo, SnapshotStore):
    def __init__(self) -> None:
        self.slots: dict[str, LogisticSlot] = {}

    async def get(self, slot_id: str) -> LogisticSlot | None:
        return self.slots.get(slot_id)

    async def list_open(
        self,
        role: SlotRole,
        start_date: date,
        end_date: date | None = None,
    ) -> Sequence[LogisticSlot]:
        matches = [
            slot
            for slot in self.slots.values()
            if slot.role == role
            and slot.is_open
            and slot.slot_date >= start_date
            and (end_date is None or slot.slot_date <= end_date)
        ]
        return sorted(matches, key=lambda slot: (slot.slot_date, slot.start_time))

    async def add(self, slot: LogisticSlot) -> None:
        self.slots[slot.id] = slot
