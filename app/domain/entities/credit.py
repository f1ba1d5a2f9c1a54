"""Weekly subscription credits and their usage log."""

from dataclasses import dataclass
from datetime import date, datetime

from app.domain.value_objects.money import Money


@dataclass(frozen=True)
class WeeklyCredits:
    """Credit balance of a subscriber for the week starting on ``week_start_date`` (a Monday)."""

    subscription_id: str
    credits_total: int
    credits_remaining: int
    week_start_date: date
    reset_at: datetime

    @property
    def has_credit(self) -> bool:
        return self.credits_remaining > 0


@dataclass(frozen=True)
class CreditUsage:
    """One consumed credit. A booking consumes at most one."""

    id: str
    user_id: str
    subscription_id: str
    booking_id: str
    week_start_date: date
    credits_before: int
    credits_after: int
    booking_weight_kg: float
    amount_saved_cents: int
    used_at: datetime
    currency: str = "eur"

    @property
    def amount_saved(self) -> float:
        return Money(cents=self.amount_saved_cents, currency=self.currency).major
