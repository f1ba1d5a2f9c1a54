from app.api.schemas.bookings import BookingResponse
from app.application.interfaces.booking_repo import BookingRepo
from app.domain.errors import BookingNotFoundError


class GetBookingUseCase:
    def __init__(self, booking_repo: BookingRepo) -> None:
        self._booking_repo = booking_repo

    async def execute(self, booking_id: str, actor_user_id: str | None) -> BookingResponse:
        booking = await self._booking_repo.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        booking.ensure_owned_by(actor_user_id)
        return BookingResponse.from_entity(booking)
