import logging

from app.api.schemas.bookings import CheckoutSessionResponse
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.stripe_gateway import (
    CheckoutLineItem,
    CheckoutSessionRequest,
    StripeGateway,
)
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.entities.booking import Booking, BookingPaymentStatus, BookingStatus, GuestOwner
from app.domain.errors import BookingNotFoundError, BookingNotPayableError


class CreateBookingCheckoutUseCase:
    """Opens a Stripe Checkout Session that pays the captured booking total."""

    def __init__(
        self,
        booking_repo: BookingRepo,
        stripe_gateway: StripeGateway,
        transaction_manager: TransactionManager,
        clock: Clock,
        app_base_url: str,
    ) -> None:
        self._booking_repo = booking_repo
        self._stripe_gateway = stripe_gateway
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._app_base_url = app_base_url.rstrip("/")
        self._logger = logging.getLogger(__name__)

    async def execute(self, booking_id: str, actor_user_id: str | None) -> CheckoutSessionResponse:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        booking.ensure_owned_by(actor_user_id)
        if (
            booking.status != BookingStatus.PENDING_PAYMENT
            or booking.payment_status != BookingPaymentStatus.PENDING
        ):
            raise BookingNotPayableError(
                booking.id, booking.status.value, booking.payment_status.value
            )

        metadata = {"booking_id": booking.id, "booking_number": booking.booking_number}
        if booking.user_id:
            metadata["user_id"] = booking.user_id
        request = CheckoutSessionRequest(
            currency=booking.currency,
            line_items=self._line_items(booking),
            success_url=(
                f"{self._app_base_url}/booking/success"
                f"?session_id={{CHECKOUT_SESSION_ID}}&booking_id={booking.id}"
            ),
            cancel_url=f"{self._app_base_url}/booking/{booking.id}",
            metadata=metadata,
            customer_email=booking.owner.contact.email if isinstance(booking.owner, GuestOwner) else None,
        )
        session = await self._stripe_gateway.create_checkout_session(
            request, idempotency_key=f"booking-checkout-{booking.id}"
        )

        # Re-read: a webhook may have confirmed the booking while Stripe was called.
        async with self._transaction_manager.start():
            current = await self._booking_repo.get(booking.id)
            if current is None:
                raise BookingNotFoundError(booking.id)
            if current.stripe_checkout_session_id is None:
                current.attach_checkout_session(session.session_id, self._clock.now())
                await self._booking_repo.save(current)

        self._logger.info(
            "Checkout session created",
            extra={"booking_id": booking.id, "checkout_session_id": session.session_id},
        )
        return CheckoutSessionResponse(
            booking_id=booking.id, session_id=session.session_id, checkout_url=session.url
        )

    def _line_items(self, booking: Booking) -> list[CheckoutLineItem]:
        if booking.credit_discount_cents > 0:
            # Per-item prices no longer add up to the total once a credit applies.
            return [
                CheckoutLineItem(
                    name=f"Booking {booking.booking_number}",
                    unit_amount_cents=booking.total_amount_cents,
                    quantity=1,
                )
            ]
        return [
            CheckoutLineItem(
                name=item.service_name,
                unit_amount_cents=item.unit_price_cents,
                quantity=item.quantity,
            )
            for item in booking.items
        ]
