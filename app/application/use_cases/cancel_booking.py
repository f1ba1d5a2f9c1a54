import logging

from app.api.schemas.bookings import BookingResponse
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.notifier import BookingNotifier
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.use_cases.booking_draft_builder import BookingDraftBuilder
from app.domain.constants import CANCELLATION_REASON_MAX_LENGTH, CANCELLATION_REASON_MIN_LENGTH
from app.domain.errors import BookingNotFoundError, BookingNotModifiableError, ValidationError


class CancelBookingUseCase:
    """Cancelling an already cancelled booking succeeds without changing it."""

    def __init__(
        self,
        booking_repo: BookingRepo,
        draft_builder: BookingDraftBuilder,
        transaction_manager: TransactionManager,
        notifier: BookingNotifier,
        clock: Clock,
        reason_min_length: int = CANCELLATION_REASON_MIN_LENGTH,
    ) -> None:
        self._booking_repo = booking_repo
        self._draft_builder = draft_builder
        self._transaction_manager = transaction_manager
        self._notifier = notifier
        self._clock = clock
        self._reason_min_length = reason_min_length
        self._logger = logging.getLogger(__name__)

    async def execute(
        self, booking_id: str, reason: str, actor_user_id: str | None
    ) -> BookingResponse:
        reason = (reason or "").strip()
        if len(reason) < self._reason_min_length:
            raise ValidationError(
                "reason", f"must be at least {self._reason_min_length} characters"
            )
        if len(reason) > CANCELLATION_REASON_MAX_LENGTH:
            raise ValidationError(
                "reason", f"must be at most {CANCELLATION_REASON_MAX_LENGTH} characters"
            )

        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            booking.ensure_owned_by(actor_user_id)

            if booking.is_cancelled:
                self._logger.info(
                    "Booking already cancelled, nothing to do", extra={"booking_id": booking.id}
                )
                return BookingResponse.from_entity(booking)

            pickup_date = await self._draft_builder.pickup_date_of(booking.schedule)
            if pickup_date is None:
                raise BookingNotModifiableError(booking.id, "pickup slot no longer exists")
            booking.ensure_cancellable(pickup_date, self._clock.today())
            booking.cancel(reason, cancelled_by=actor_user_id or "guest", now=self._clock.now())
            await self._booking_repo.save(booking)

        self._logger.info(
            "Booking cancelled",
            extra={"booking_id": booking.id, "payment_status": booking.payment_status.value},
        )
        await self._notifier.booking_cancelled(booking)
        return BookingResponse.from_entity(booking)
