from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_actor_user_id, get_use_cases
from app.api.schemas.bookings import (
    AdvanceBookingStatusRequest,
    BookingResponse,
    CancelBookingRequest,
    CheckoutSessionResponse,
    CreateBookingRequest,
    CreateBookingResponse,
    ModifyBookingRequest,
)
from app.infrastructure.db.retry import retry_on_transient

router = APIRouter()


@router.post(
    "/bookings",
    response_model=CreateBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> CreateBookingResponse:
    # Booking numbers are drawn from a shared counter row.
    return await retry_on_transient(
        lambda: use_cases["create_booking"].execute(request=payload, actor_user_id=actor_user_id)
    )


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await use_cases["get_booking"].execute(
        booking_id=booking_id, actor_user_id=actor_user_id
    )


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
async def modify_booking(
    booking_id: str,
    payload: ModifyBookingRequest,
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    # Writes are optimistic; a lost race re-runs the whole unit of work.
    return await retry_on_transient(
        lambda: use_cases["modify_booking"].execute(
            booking_id=booking_id, request=payload, actor_user_id=actor_user_id
        )
    )


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    payload: CancelBookingRequest,
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await retry_on_transient(
        lambda: use_cases["cancel_booking"].execute(
            booking_id=booking_id, reason=payload.reason, actor_user_id=actor_user_id
        )
    )


@router.post("/bookings/{booking_id}/status", response_model=BookingResponse)
async def advance_booking_status(
    booking_id: str,
    payload: AdvanceBookingStatusRequest,
    use_cases=Depends(get_use_cases),
) -> BookingResponse:
    return await retry_on_transient(
        lambda: use_cases["advance_status"].execute(booking_id=booking_id, target=payload.status)
    )


@router.post(
    "/bookings/{booking_id}/checkout",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking_checkout(
    booking_id: str,
    actor_user_id: str | None = Depends(get_actor_user_id),
    use_cases=Depends(get_use_cases),
) -> CheckoutSessionResponse:
    # The Stripe call carries an idempotency key, so a retry reuses the session.
    return await retry_on_transient(
        lambda: use_cases["create_checkout"].execute(
            booking_id=booking_id, actor_user_id=actor_user_id
        )
    )
