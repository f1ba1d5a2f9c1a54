import logging

from app.api.schemas.bookings import BookingResponse
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.entities.booking import BookingStatus
from app.domain.errors import BookingNotFoundError, InvalidBookingTransitionError, ValidationError

# Statuses driven by operations staff. Payment and cancellation have their own paths.
OPERATIONAL_TARGETS = frozenset(
    {
        BookingStatus.PICKED_UP,
        BookingStatus.IN_PROGRESS,
        BookingStatus.READY,
        BookingStatus.DELIVERED,
        BookingStatus.PAST_DUE,
        BookingStatus.CONFIRMED,
    }
)


class AdvanceBookingStatusUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._booking_repo = booking_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, booking_id: str, target: BookingStatus) -> BookingResponse:
        if target not in OPERATIONAL_TARGETS:
            raise ValidationError("status", f"'{target.value}' cannot be set directly")

        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            previous = booking.status
            if previous == target:
                return BookingResponse.from_entity(booking)
            # Confirmation normally comes from a payment; staff may only lift past_due.
            if target == BookingStatus.CONFIRMED and previous != BookingStatus.PAST_DUE:
                raise InvalidBookingTransitionError(booking.id, previous.value, target.value)
            booking.transition_to(target, self._clock.now())
            await self._booking_repo.save(booking)

        self._logger.info(
            "Booking status advanced",
            extra={"booking_id": booking.id, "from": previous.value, "to": target.value},
        )
        return BookingResponse.from_entity(booking)
