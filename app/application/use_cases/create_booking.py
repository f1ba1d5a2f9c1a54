import logging
from datetime import datetime

from app.api.schemas.bookings import CreateBookingRequest, CreateBookingResponse
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.credit_repo import CreditUsageRepo
from app.application.interfaces.notifier import BookingNotifier
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.application.use_cases.booking_draft_builder import BookingDraft, BookingDraftBuilder
from app.domain.constants import DEFAULT_CURRENCY
from app.domain.entities.booking import Booking, BookingPaymentStatus, BookingStatus
from app.domain.entities.credit import CreditUsage
from app.domain.value_objects.booking_number import BookingNumber


class CreateBookingUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        draft_builder: BookingDraftBuilder,
        transaction_manager: TransactionManager,
        notifier: BookingNotifier,
        clock: Clock,
        uuid_generator: UUIDGenerator,
        currency: str = DEFAULT_CURRENCY,
        credit_repo: CreditUsageRepo | None = None,
    ) -> None:
        self._booking_repo = booking_repo
        self._credit_repo = credit_repo
        self._draft_builder = draft_builder
        self._transaction_manager = transaction_manager
        self._notifier = notifier
        self._clock = clock
        self._uuid_generator = uuid_generator
        self._currency = currency
        self._logger = logging.getLogger(__name__)

    async def execute(
        self, request: CreateBookingRequest, actor_user_id: str | None
    ) -> CreateBookingResponse:
        async with self._transaction_manager.start():
            draft = await self._draft_builder.build(request, actor_user_id)
            now = self._clock.now()
            sequence = await self._booking_repo.next_booking_sequence()
            booking = Booking(
                id=self._uuid_generator.generate_uuid(),
                booking_number=str(BookingNumber.from_sequence(now.date(), sequence)),
                owner=draft.owner,
                schedule=draft.schedule,
                items=draft.items,
                service_class=draft.service_class,
                status=BookingStatus.PENDING_PAYMENT,
                payment_status=BookingPaymentStatus.PENDING,
                currency=self._currency,
                special_instructions=draft.special_instructions,
                created_at=now,
                updated_at=now,
            )
            covered = False
            if draft.credit is not None:
                booking.apply_subscription_credit(
                    draft.credit.subscription_id,
                    draft.credit.weight_kg,
                    draft.credit.discount_cents,
                    now,
                )
                # Nothing left to charge: the booking is settled by the credit.
                if booking.total_amount_cents == 0:
                    covered = booking.record_payment_success(now)
            await self._booking_repo.add(booking)
            if draft.credit is not None:
                await self._consume_credit(booking, draft, now)

        self._logger.info(
            "Booking created",
            extra={
                "booking_id": booking.id,
                "booking_number": booking.booking_number,
                "guest": booking.is_guest,
                "slot_mode": booking.uses_slots,
                "total_amount_cents": booking.total_amount_cents,
                "used_subscription_credit": booking.used_subscription_credit,
                "covered_by_credit": covered,
            },
        )
        if covered:
            await self._notifier.booking_confirmed(booking)
        else:
            await self._notifier.booking_created(booking)

        return CreateBookingResponse(
            id=booking.id,
            booking_number=booking.booking_number,
            status=booking.status,
            payment_status=booking.payment_status,
            total_amount_cents=booking.total_amount_cents,
            total_amount=booking.total_amount,
            currency=booking.currency,
            used_subscription_credit=booking.used_subscription_credit,
            credit_discount_cents=booking.credit_discount_cents,
        )

    async def _consume_credit(self, booking: Booking, draft: BookingDraft, now: datetime) -> None:
        if self._credit_repo is None:
            raise RuntimeError("Credit redemption requires a credit repository")
        credit = draft.credit
        await self._credit_repo.add(
            CreditUsage(
                id=self._uuid_generator.generate_uuid(),
                user_id=booking.user_id,
                subscription_id=credit.subscription_id,
                booking_id=booking.id,
                week_start_date=credit.week_start_date,
                credits_before=credit.credits_before,
                credits_after=credit.credits_before - 1,
                booking_weight_kg=credit.weight_kg,
                amount_saved_cents=booking.credit_discount_cents,
                used_at=now,
                currency=booking.currency,
            )
        )
