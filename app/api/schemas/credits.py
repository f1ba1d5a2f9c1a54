from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities.credit import CreditUsage, WeeklyCredits
from app.domain.services.subscription_credits import CreditQuote


class WeeklyCreditsOut(BaseModel):
    subscription_id: str
    credits_total: int
    credits_remaining: int
    week_start_date: date
    reset_at: datetime

    @classmethod
    def from_entity(cls, credits: WeeklyCredits) -> "WeeklyCreditsOut":
        return cls(
            subscription_id=credits.subscription_id,
            credits_total=credits.credits_total,
            credits_remaining=credits.credits_remaining,
            week_start_date=credits.week_start_date,
            reset_at=credits.reset_at,
        )


class CreditStatsOut(BaseModel):
    total_used: int
    total_saved: float
    usage_rate: float


class CreditsResponse(BaseModel):
    credits: WeeklyCreditsOut | None
    stats: CreditStatsOut | None = None
    message: str | None = None


class CreditUsageOut(BaseModel):
    id: str
    subscription_id: str
    booking_id: str
    week_start_date: date
    credits_before: int
    credits_after: int
    booking_weight_kg: float
    amount_saved_cents: int
    amount_saved: float
    used_at: datetime

    @classmethod
    def from_entity(cls, usage: CreditUsage) -> "CreditUsageOut":
        return cls(
            id=usage.id,
            subscription_id=usage.subscription_id,
            booking_id=usage.booking_id,
            week_start_date=usage.week_start_date,
            credits_before=usage.credits_before,
            credits_after=usage.credits_after,
            booking_weight_kg=usage.booking_weight_kg,
            amount_saved_cents=usage.amount_saved_cents,
            amount_saved=usage.amount_saved,
            used_at=usage.used_at,
        )


class CreditHistoryResponse(BaseModel):
    history: list[CreditUsageOut]
    total_saved_cents: int
    total_saved: float
    count: int


class CheckCreditRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    booking_weight_kg: float = Field(ge=1, le=100, alias="bookingWeightKg")


class CheckCreditResponse(BaseModel):
    can_use: bool
    credits_remaining: int
    total_amount_cents: int
    discount_cents: int
    surplus_cents: int
    message: str

    @classmethod
    def from_quote(cls, quote: CreditQuote) -> "CheckCreditResponse":
        return cls(
            can_use=quote.can_use,
            credits_remaining=quote.credits_remaining,
            total_amount_cents=quote.total_cents,
            discount_cents=quote.discount_cents,
            surplus_cents=quote.surplus_cents,
            message=quote.message,
        )
