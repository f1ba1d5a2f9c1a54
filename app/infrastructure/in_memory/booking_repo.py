import copy

from app.application.interfaces.booking_repo import BookingRepo
from app.domain.entities.booking import Booking
from app.domain.errors import ConcurrentModificationError
from app.infrastructure.in_memory._store import SnapshotStore


class InMemoryBookingRepo(BookingRepo, SnapshotStore):
    def __init__(self) -> None:
        self.bookings: dict[str, Booking] = {}
        self.sequence = 0

    async def next_booking_sequence(self) -> int:
        self.sequence += 1
        return self.sequence

    async def add(self, booking: Booking) -> None:
        if booking.id in self.bookings:
            raise ValueError(f"Booking already exists: {booking.id}")
        if any(stored.booking_number == booking.booking_number for stored in self.bookings.values()):
            raise ValueError(f"Booking number already used: {booking.booking_number}")
        self.bookings[booking.id] = copy.deepcopy(booking)

    async def get(self, booking_id: str) -> Booking | None:
        booking = self.bookings.get(booking_id)
        return copy.deepcopy(booking) if booking else None

    async def save(self, booking: Booking) -> None:
        stored = self.bookings.get(booking.id)
        if stored is None:
            raise ValueError(f"Booking not found: {booking.id}")
        if stored.version != booking.version:
            raise ConcurrentModificationError("Booking", booking.id)
        if stored.paid_at is not None:
            booking.paid_at = stored.paid_at
        booking.version += 1
        self.bookings[booking.id] = copy.deepcopy(booking)
