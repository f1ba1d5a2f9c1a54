"""Read side of subscription credits: balance, history and price checks."""

from datetime import date

from app.api.schemas.credits import (
    CheckCreditResponse,
    CreditHistoryResponse,
    CreditStatsOut,
    CreditsResponse,
    CreditUsageOut,
    WeeklyCreditsOut,
)
from app.application.interfaces.clock import Clock
from app.application.interfaces.credit_repo import CreditUsageRepo
from app.application.interfaces.subscription_repo import SubscriptionRepo
from app.domain.constants import DEFAULT_CURRENCY
from app.domain.entities.credit import WeeklyCredits
from app.domain.entities.subscription import Subscription
from app.domain.errors import AuthenticationRequiredError
from app.domain.services.subscription_credits import quote_credit, week_start, weekly_credits
from app.domain.value_objects.money import Money

# Usages looked at when computing the lifetime count in stats.
STATS_HISTORY_LIMIT = 100


async def current_credits(
    subscription_repo: SubscriptionRepo,
    credit_repo: CreditUsageRepo,
    user_id: str,
    today: date,
) -> tuple[Subscription, WeeklyCredits] | None:
    """The user's credit-granting subscription and this week's balance, if any."""
    live = await subscription_repo.list_live_for_user(user_id)
    subscription = next((row for row in live if row.grants_credits), None)
    if subscription is None:
        return None
    used = await credit_repo.count_used(user_id, week_start(today))
    return subscription, weekly_credits(subscription, used, today)


def _require_user(actor_user_id: str | None) -> str:
    if not actor_user_id:
        raise AuthenticationRequiredError()
    return actor_user_id


class GetSubscriptionCreditsUseCase:
    def __init__(
        self,
        subscription_repo: SubscriptionRepo,
        credit_repo: CreditUsageRepo,
        clock: Clock,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self._subscription_repo = subscription_repo
        self._credit_repo = credit_repo
        self._clock = clock
        self._currency = currency

    async def execute(self, actor_user_id: str | None, include_stats: bool = False) -> CreditsResponse:
        user_id = _require_user(actor_user_id)
        current = await current_credits(
            self._subscription_repo, self._credit_repo, user_id, self._clock.today()
        )
        credits = current[1] if current else None
        response = CreditsResponse(
            credits=WeeklyCreditsOut.from_entity(credits) if credits else None,
            message=None if credits else "No credits available",
        )
        if not include_stats:
            return response

        history = await self._credit_repo.list_for_user(user_id, STATS_HISTORY_LIMIT)
        saved_cents = await self._credit_repo.total_saved_cents(user_id)
        usage_rate = 0.0
        if credits and credits.credits_total > 0:
            used = credits.credits_total - credits.credits_remaining
            usage_rate = used / credits.credits_total * 100
        response.stats = CreditStatsOut(
            total_used=len(history),
            total_saved=Money(cents=saved_cents, currency=self._currency).major,
            usage_rate=usage_rate,
        )
        return response


class GetCreditHistoryUseCase:
    def __init__(self, credit_repo: CreditUsageRepo, currency: str = DEFAULT_CURRENCY) -> None:
        self._credit_repo = credit_repo
        self._currency = currency

    async def execute(self, actor_user_id: str | None, limit: int = 20) -> CreditHistoryResponse:
        user_id = _require_user(actor_user_id)
        history = await self._credit_repo.list_for_user(user_id, limit)
        saved_cents = await self._credit_repo.total_saved_cents(user_id)
        return CreditHistoryResponse(
            history=[CreditUsageOut.from_entity(usage) for usage in history],
            total_saved_cents=saved_cents,
            total_saved=Money(cents=saved_cents, currency=self._currency).major,
            count=len(history),
        )


class CheckCreditUseCase:
    """Quotes a booking weight against the current balance without consuming anything."""

    def __init__(
        self, subscription_repo: SubscriptionRepo, credit_repo: CreditUsageRepo, clock: Clock
    ) -> None:
        self._subscription_repo = subscription_repo
        self._credit_repo = credit_repo
        self._clock = clock

    async def execute(self, actor_user_id: str | None, booking_weight_kg: float) -> CheckCreditResponse:
        user_id = _require_user(actor_user_id)
        current = await current_credits(
            self._subscription_repo, self._credit_repo, user_id, self._clock.today()
        )
        quote = quote_credit(current[1] if current else None, booking_weight_kg)
        return CheckCreditResponse.from_quote(quote)
