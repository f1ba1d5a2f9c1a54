import logging

from app.api.schemas.bookings import BookingResponse, ModifyBookingRequest
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.use_cases.booking_draft_builder import BookingDraftBuilder, to_guest_address
from app.domain.entities.booking import Booking, GuestOwner, RegisteredOwner
from app.domain.errors import BookingNotFoundError, BookingNotModifiableError, ValidationError

_SCHEDULE_FIELDS = {"pickup_slot_id", "delivery_slot_id", "pickup_date", "pickup_time_slot"}
_ADDRESS_ID_FIELDS = {"pickup_address_id", "delivery_address_id"}
_GUEST_ADDRESS_FIELDS = {"guest_pickup_address", "guest_delivery_address"}


class ModifyBookingUseCase:
    """Partial update of addresses, schedule and instructions. Items never change."""

    def __init__(
        self,
        booking_repo: BookingRepo,
        draft_builder: BookingDraftBuilder,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._booking_repo = booking_repo
        self._draft_builder = draft_builder
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        booking_id: str,
        request: ModifyBookingRequest,
        actor_user_id: str | None,
    ) -> BookingResponse:
        provided = request.model_fields_set
        if not provided:
            raise ValidationError("body", "no changes were provided")

        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            booking.ensure_owned_by(actor_user_id)

            pickup_date = await self._draft_builder.pickup_date_of(booking.schedule)
            if pickup_date is None:
                raise BookingNotModifiableError(booking.id, "pickup slot no longer exists")
            booking.ensure_modifiable(pickup_date, self._clock.today())

            now = self._clock.now()
            if provided & (_ADDRESS_ID_FIELDS | _GUEST_ADDRESS_FIELDS):
                booking.change_owner(self._updated_owner(booking, request, provided), now)
            if provided & _SCHEDULE_FIELDS:
                schedule = await self._draft_builder.resolve_schedule(
                    request, booking.service_class, current=booking.schedule
                )
                booking.reschedule(schedule, now)
            if "special_instructions" in provided:
                booking.update_instructions(request.special_instructions or None, now)

            await self._booking_repo.save(booking)

        self._logger.info(
            "Booking modified",
            extra={"booking_id": booking.id, "fields": sorted(provided)},
        )
        return BookingResponse.from_entity(booking)

    def _updated_owner(
        self, booking: Booking, request: ModifyBookingRequest, provided: set[str]
    ) -> RegisteredOwner | GuestOwner:
        owner = booking.owner
        if isinstance(owner, RegisteredOwner):
            if provided & _GUEST_ADDRESS_FIELDS:
                raise ValidationError(
                    "guest_pickup_address", "only guest bookings carry address snapshots"
                )
            return RegisteredOwner(
                user_id=owner.user_id,
                pickup_address_id=request.pickup_address_id or owner.pickup_address_id,
                delivery_address_id=request.delivery_address_id or owner.delivery_address_id,
            )

        if provided & _ADDRESS_ID_FIELDS:
            raise ValidationError("pickup_address_id", "guest bookings use address snapshots")
        return GuestOwner(
            contact=owner.contact,
            pickup_address=(
                to_guest_address(request.guest_pickup_address)
                if request.guest_pickup_address
                else owner.pickup_address
            ),
            delivery_address=(
                to_guest_address(request.guest_delivery_address)
                if request.guest_delivery_address
                else owner.delivery_address
            ),
        )
