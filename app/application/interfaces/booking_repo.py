from app.domain.entities.booking import Booking


class BookingRepo:
    async def next_booking_sequence(self) -> int:
        """Next value of the monotonically increasing booking number sequence."""
        raise NotImplementedError

    async def add(self, booking: Booking) -> None:
        raise NotImplementedError

    async def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    async def save(self, booking: Booking) -> None:
        """
        Persist the mutable fields of an existing booking.

        The write only succeeds if the stored version still matches
        ``booking.version``; otherwise ConcurrentModificationError is raised and
        the unit of work must be retried from a fresh read. On success the
        version is bumped. An already stored paid_at is kept.
        """
        raise NotImplementedError
