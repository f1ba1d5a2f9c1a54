"""Weekly credit allowance and the discount a credit is worth."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from app.domain.constants import (
    CREDIT_MAX_FREE_WEIGHT_KG,
    CREDIT_PRICE_PER_KG_CENTS,
    DEFAULT_WEEKLY_CREDITS,
    PLAN_WEEKLY_CREDITS,
)
from app.domain.entities.credit import WeeklyCredits
from app.domain.entities.subscription import Subscription


def week_start(day: date) -> date:
    """Credits reset every Monday at 00:00 UTC."""
    return day - timedelta(days=day.weekday())


def next_reset_at(day: date) -> datetime:
    return datetime.combine(week_start(day) + timedelta(days=7), time.min, tzinfo=timezone.utc)


def weekly_allowance(plan_id: str) -> int:
    return PLAN_WEEKLY_CREDITS.get(plan_id.lower(), DEFAULT_WEEKLY_CREDITS)


def weekly_credits(subscription: Subscription, used_this_week: int, today: date) -> WeeklyCredits:
    total = weekly_allowance(subscription.plan_id)
    return WeeklyCredits(
        subscription_id=subscription.id,
        credits_total=total,
        credits_remaining=max(total - used_this_week, 0),
        week_start_date=week_start(today),
        reset_at=next_reset_at(today),
    )


def credit_discount_cents(weight_kg: float) -> int:
    """Value of one credit: the weight up to the free maximum, at the per-kg price."""
    return round(min(weight_kg, CREDIT_MAX_FREE_WEIGHT_KG) * CREDIT_PRICE_PER_KG_CENTS)


def surplus_cents(weight_kg: float) -> int:
    return round(max(weight_kg - CREDIT_MAX_FREE_WEIGHT_KG, 0) * CREDIT_PRICE_PER_KG_CENTS)


@dataclass(frozen=True)
class CreditQuote:
    can_use: bool
    credits_remaining: int
    total_cents: int
    discount_cents: int
    surplus_cents: int
    message: str


def quote_credit(credits: WeeklyCredits | None, weight_kg: float) -> CreditQuote:
    """What a booking of ``weight_kg`` would cost with the user's current balance."""
    if credits is None or not credits.has_credit:
        return CreditQuote(
            can_use=False,
            credits_remaining=0,
            total_cents=round(weight_kg * CREDIT_PRICE_PER_KG_CENTS),
            discount_cents=0,
            surplus_cents=0,
            message="No credit available, standard price applies",
        )

    remaining = credits.credits_remaining - 1
    surplus = surplus_cents(weight_kg)
    if surplus == 0:
        message = f"Free booking (credit used), {remaining} credit(s) left this week"
    else:
        extra_kg = weight_kg - CREDIT_MAX_FREE_WEIGHT_KG
        message = (
            f"{CREDIT_MAX_FREE_WEIGHT_KG} kg free (credit used), "
            f"{extra_kg:.1f} kg surplus charged {surplus / 100:.2f}"
        )
    return CreditQuote(
        can_use=True,
        credits_remaining=remaining,
        total_cents=surplus,
        discount_cents=credit_discount_cents(weight_kg),
        surplus_cents=surplus,
        message=message,
    )
