from datetime import date
from typing import Sequence

from app.domain.entities.credit import CreditUsage


class CreditUsageRepo:
    async def count_used(self, user_id: str, week_start_date: date) -> int:
        raise NotImplementedError

    async def add(self, usage: CreditUsage) -> None:
        """At most one usage per booking."""
        raise NotImplementedError

    async def list_for_user(self, user_id: str, limit: int) -> Sequence[CreditUsage]:
        """Most recent first."""
        raise NotImplementedError

    async def total_saved_cents(self, user_id: str) -> int:
        raise NotImplementedError
