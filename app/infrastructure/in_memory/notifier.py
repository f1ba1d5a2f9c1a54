from app.application.interfaces.notifier import BookingNotifier
from app.domain.entities.booking import Booking


class RecordingNotifier(BookingNotifier):
    """Keeps (event, booking id) pairs instead of sending anything."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def booking_created(self, booking: Booking) -> None:
        self.sent.append(("booking_created", booking.id))

    async def booking_confirmed(self, booking: Booking) -> None:
        self.sent.append(("booking_confirmed", booking.id))

    async def booking_cancelled(self, booking: Booking) -> None:
        self.sent.append(("booking_cancelled", booking.id))
