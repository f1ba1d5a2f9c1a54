"""Notifier port - outbound transactional email trigger."""

from app.domain.entities.booking import Booking


class BookingNotifier:
    """
    Fire-and-forget trigger. Implementations log failures and never raise:
    the booking write has already been committed when these are called.
    """

    async def booking_created(self, booking: Booking) -> None:
        raise NotImplementedError

    async def booking_confirmed(self, booking: Booking) -> None:
        raise NotImplementedError

    async def booking_cancelled(self, booking: Booking) -> None:
        raise NotImplementedError
