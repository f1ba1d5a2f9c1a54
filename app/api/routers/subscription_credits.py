from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_actor_user_id, get_use_cases
from app.api.schemas.credits import (
    CheckCreditRequest,
    CheckCreditResponse,
    CreditHistoryResponse,
    CreditsResponse,
)

router = APIRouter()


@router.get("/subscriptions/credits", response_model=CreditsResponse)
async def get_subscription_credits(
    stats: bool = Query(default=False),
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> CreditsResponse:
    return await use_cases["get_credits"].execute(
        actor_user_id=actor_user_id, include_stats=stats
    )


@router.get("/subscriptions/credits/history", response_model=CreditHistoryResponse)
async def get_credit_history(
    limit: int = Query(default=20, ge=1, le=100),
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> CreditHistoryResponse:
    return await use_cases["credit_history"].execute(actor_user_id=actor_user_id, limit=limit)


@router.post("/subscriptions/credits/check", response_model=CheckCreditResponse)
async def check_subscription_credit(
    payload: CheckCreditRequest,
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> CheckCreditResponse:
    return await use_cases["check_credit"].execute(
        actor_user_id=actor_user_id, booking_weight_kg=payload.booking_weight_kg
    )
