import copy
from datetime import date
from typing import Sequence

from app.application.interfaces.credit_repo import CreditUsageRepo
from app.domain.entities.credit import CreditUsage
from app.infrastructure.in_memory._store import SnapshotStore


class InMemoryCreditUsageRepo(CreditUsageRepo, SnapshotStore):
    def __init__(self) -> None:
        self.usages: dict[str, CreditUsage] = {}

    async def count_used(self, user_id: str, week_start_date: date) -> int:
        return sum(
            1
            for usage in self.usages.values()
            if usage.user_id == user_id and usage.week_start_date == week_start_date
        )

    async def add(self, usage: CreditUsage) -> None:
        if any(stored.booking_id == usage.booking_id for stored in self.usages.values()):
            raise ValueError(f"Credit already used for booking: {usage.booking_id}")
        self.usages[usage.id] = copy.deepcopy(usage)

    async def list_for_user(self, user_id: str, limit: int) -> Sequence[CreditUsage]:
        usages = [usage for usage in self.usages.values() if usage.user_id == user_id]
        usages.sort(key=lambda usage: usage.used_at, reverse=True)
        return [copy.deepcopy(usage) for usage in usages[:limit]]

    async def total_saved_cents(self, user_id: str) -> int:
        return sum(
            usage.amount_saved_cents for usage in self.usages.values() if usage.user_id == user_id
        )
