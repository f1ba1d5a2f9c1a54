"""Booking command handler: create, modify, cancel, status changes and checkout."""

from datetime import timedelta

import pytest

from app.api.schemas.bookings import (
    CreateBookingRequest,
    ModifyBookingRequest,
)
from app.application.use_cases.advance_booking_status import AdvanceBookingStatusUseCase
from app.application.use_cases.cancel_booking import CancelBookingUseCase
from app.application.use_cases.create_booking import CreateBookingUseCase
from app.application.use_cases.create_booking_checkout import CreateBookingCheckoutUseCase
from app.application.use_cases.get_booking import GetBookingUseCase
from app.application.use_cases.modify_booking import ModifyBookingUseCase
from app.domain.entities.booking import (
    BookingPaymentStatus,
    BookingStatus,
    GuestOwner,
    ServiceClass,
)
from app.domain.errors import (
    BookingNotFoundError,
    BookingNotModifiableError,
    BookingNotPayableError,
    ConcurrentModificationError,
    ForbiddenError,
    InvalidBookingTransitionError,
    ValidationError,
)
from app.domain.value_objects import LegacySchedule, SlotSchedule
from conftest import NOW, TODAY, guest_booking_payload, slot_booking_payload

USER = "user-1"


@pytest.fixture
def create_use_case(booking_repo, draft_builder, tx_manager, notifier, clock, uuid_generator, credit_repo):
    return CreateBookingUseCase(
        booking_repo=booking_repo,
        draft_builder=draft_builder,
        transaction_manager=tx_manager,
        notifier=notifier,
        clock=clock,
        uuid_generator=uuid_generator,
        credit_repo=credit_repo,
    )


@pytest.fixture
def modify_use_case(booking_repo, draft_builder, tx_manager, clock):
    return ModifyBookingUseCase(
        booking_repo=booking_repo,
        draft_builder=draft_builder,
        transaction_manager=tx_manager,
        clock=clock,
    )


@pytest.fixture
def cancel_use_case(booking_repo, draft_builder, tx_manager, notifier, clock):
    return CancelBookingUseCase(
        booking_repo=booking_repo,
        draft_builder=draft_builder,
        transaction_manager=tx_manager,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def advance_use_case(booking_repo, tx_manager, clock):
    return AdvanceBookingStatusUseCase(booking_repo=booking_repo, transaction_manager=tx_manager, clock=clock)


@pytest.fixture
def checkout_use_case(booking_repo, stripe_gateway, tx_manager, clock):
    return CreateBookingCheckoutUseCase(
        booking_repo=booking_repo,
        stripe_gateway=stripe_gateway,
        transaction_manager=tx_manager,
        clock=clock,
        app_base_url="https://laundry.test/",
    )


async def _create(create_use_case, payload=None, actor=USER):
    request = CreateBookingRequest.model_validate(payload or slot_booking_payload())
    return await create_use_case.execute(request=request, actor_user_id=actor)


async def _confirm(booking_repo, booking_id):
    booking = await booking_repo.get(booking_id)
    booking.record_payment_success(NOW)
    await booking_repo.save(booking)


class TestCreateBooking:
    async def test_slot_booking_captures_prices_and_awaits_payment(
        self, create_use_case, booking_repo, notifier
    ):
        response = await _create(create_use_case)

        assert response.status == BookingStatus.PENDING_PAYMENT
        assert response.payment_status == BookingPaymentStatus.PENDING
        assert response.total_amount_cents == 2 * 1250
        assert response.total_amount == 25.0
        assert response.booking_number == f"BK-{TODAY:%Y%m%d}-000001"

        stored = await booking_repo.get(response.id)
        assert stored.user_id == USER
        assert stored.schedule == SlotSchedule("pickup-1", "delivery-d4-late")
        assert stored.items[0].unit_price_cents == 1250
        assert notifier.sent == [("booking_created", response.id)]

    async def test_booking_numbers_are_sequential(self, create_use_case):
        first = await _create(create_use_case)
        second = await _create(create_use_case)

        assert first.booking_number.endswith("000001")
        assert second.booking_number.endswith("000002")

    async def test_guest_booking_with_legacy_schedule(self, create_use_case, booking_repo):
        response = await _create(create_use_case, guest_booking_payload(), actor=None)

        stored = await booking_repo.get(response.id)
        assert isinstance(stored.owner, GuestOwner)
        assert stored.owner.contact.email == "alex.doe@example.com"
        assert stored.user_id is None
        assert isinstance(stored.schedule, LegacySchedule)
        assert str(stored.schedule.pickup_time_range) == "09:00-12:00"
        assert response.total_amount_cents == 5 * 320

    async def test_both_scheduling_modes_are_rejected(self, create_use_case, booking_repo):
        payload = slot_booking_payload(pickupDate=str(TODAY + timedelta(days=2)))

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload)

        assert exc_info.value.field == "pickup_date"
        assert booking_repo.bookings == {}

    async def test_missing_schedule_is_rejected(self, create_use_case):
        payload = slot_booking_payload()
        del payload["pickupSlotId"], payload["deliverySlotId"]

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload)

        assert exc_info.value.field == "schedule"

    async def test_half_a_slot_pair_is_rejected(self, create_use_case):
        payload = slot_booking_payload()
        del payload["deliverySlotId"]

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload)

        assert exc_info.value.field == "delivery_slot_id"

    async def test_legacy_pickup_must_be_tomorrow_or_later(self, create_use_case):
        payload = guest_booking_payload(pickupDate=str(TODAY))

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload, actor=None)

        assert exc_info.value.field == "pickup_date"

    async def test_malformed_legacy_time_range(self, create_use_case):
        payload = guest_booking_payload(pickupTimeSlot="9am-noon")

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload, actor=None)

        assert exc_info.value.field == "pickup_time_slot"

    async def test_delivery_inside_lead_time_is_rejected(self, create_use_case):
        payload = slot_booking_payload(deliverySlotId="delivery-d2")

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload)

        assert exc_info.value.field == "delivery_slot_id"

    async def test_express_item_shortens_lead_time(self, create_use_case, booking_repo):
        payload = slot_booking_payload(
            deliverySlotId="delivery-d2", items=[{"serviceId": "svc-express", "quantity": 1}]
        )

        response = await _create(create_use_case, payload)

        stored = await booking_repo.get(response.id)
        assert stored.service_class == ServiceClass.EXPRESS

    async def test_closed_pickup_slot_is_rejected(self, create_use_case):
        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, slot_booking_payload(pickupSlotId="pickup-closed"))

        assert exc_info.value.field == "pickup_slot_id"

    async def test_unknown_slot_is_rejected(self, create_use_case):
        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, slot_booking_payload(deliverySlotId="nope"))

        assert exc_info.value.field == "delivery_slot_id"

    async def test_address_ids_need_a_signed_in_user(self, create_use_case):
        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, slot_booking_payload(), actor=None)

        assert exc_info.value.field == "user_id"

    async def test_signed_in_user_cannot_book_as_guest(self, create_use_case):
        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, guest_booking_payload(), actor=USER)

        assert exc_info.value.field == "guest_contact"

    async def test_incomplete_guest_bundle(self, create_use_case):
        payload = guest_booking_payload()
        del payload["guestDeliveryAddress"]

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload, actor=None)

        assert exc_info.value.field == "guest_delivery_address"

    async def test_identity_is_required(self, create_use_case):
        payload = slot_booking_payload()
        del payload["pickupAddressId"], payload["deliveryAddressId"]

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload)

        assert exc_info.value.field == "identity"

    async def test_unknown_service(self, create_use_case):
        payload = slot_booking_payload(items=[{"serviceId": "svc-wash", "quantity": 1}, {"serviceId": "svc-x", "quantity": 1}])

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload)

        assert exc_info.value.field == "items[1].service_id"

    async def test_duplicate_service_lines(self, create_use_case):
        payload = slot_booking_payload(items=[{"serviceId": "svc-wash", "quantity": 1}] * 2)

        with pytest.raises(ValidationError) as exc_info:
            await _create(create_use_case, payload)

        assert exc_info.value.field == "items"


class TestModifyBooking:
    async def test_pending_payment_booking_is_not_modifiable(self, create_use_case, modify_use_case):
        created = await _create(create_use_case)

        with pytest.raises(BookingNotModifiableError):
            await modify_use_case.execute(
                created.id,
                ModifyBookingRequest.model_validate({"specialInstructions": "Leave at door"}),
                USER,
            )

    async def test_confirmed_booking_can_be_rescheduled(
        self, create_use_case, modify_use_case, booking_repo
    ):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        response = await modify_use_case.execute(
            created.id,
            ModifyBookingRequest.model_validate(
                {"deliverySlotId": "delivery-d6", "pickupAddressId": "addr-new"}
            ),
            USER,
        )

        assert response.delivery_slot_id == "delivery-d6"
        assert response.pickup_slot_id == "pickup-1"
        assert response.pickup_address_id == "addr-new"
        assert response.delivery_address_id == "addr-office"
        assert response.total_amount_cents == 2500

    async def test_switching_to_legacy_mode_drops_the_slot_pair(
        self, create_use_case, modify_use_case, booking_repo
    ):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        response = await modify_use_case.execute(
            created.id,
            ModifyBookingRequest.model_validate(
                {"pickupDate": str(TODAY + timedelta(days=3)), "pickupTimeSlot": "14:00-17:00"}
            ),
            USER,
        )

        assert response.pickup_slot_id is None
        assert response.delivery_slot_id is None
        assert response.pickup_time_slot == "14:00-17:00"

    async def test_reschedule_still_honours_lead_time(
        self, create_use_case, modify_use_case, booking_repo
    ):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        with pytest.raises(ValidationError):
            await modify_use_case.execute(
                created.id,
                ModifyBookingRequest.model_validate({"deliverySlotId": "delivery-d2"}),
                USER,
            )

        stored = await booking_repo.get(created.id)
        assert stored.schedule.delivery_slot_id == "delivery-d4-late"

    async def test_pickup_day_reached_blocks_changes(
        self, create_use_case, modify_use_case, booking_repo, clock
    ):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)
        clock.advance(days=1)

        with pytest.raises(BookingNotModifiableError):
            await modify_use_case.execute(
                created.id,
                ModifyBookingRequest.model_validate({"specialInstructions": "Too late"}),
                USER,
            )

    async def test_other_user_is_forbidden(self, create_use_case, modify_use_case, booking_repo):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        with pytest.raises(ForbiddenError):
            await modify_use_case.execute(
                created.id,
                ModifyBookingRequest.model_validate({"specialInstructions": "Mine now"}),
                "user-2",
            )

    async def test_empty_patch_is_rejected(self, modify_use_case):
        with pytest.raises(ValidationError):
            await modify_use_case.execute("missing", ModifyBookingRequest(), USER)

    async def test_unknown_booking(self, modify_use_case):
        with pytest.raises(BookingNotFoundError):
            await modify_use_case.execute(
                "missing", ModifyBookingRequest.model_validate({"specialInstructions": "x"}), USER
            )


class TestCancelBooking:
    async def test_short_reason_is_rejected(self, create_use_case, cancel_use_case, booking_repo):
        created = await _create(create_use_case)

        with pytest.raises(ValidationError) as exc_info:
            await cancel_use_case.execute(created.id, "oops!", USER)

        assert exc_info.value.field == "reason"
        assert (await booking_repo.get(created.id)).status == BookingStatus.PENDING_PAYMENT

    async def test_cancel_confirmed_booking_then_repeat_is_a_noop(
        self, create_use_case, cancel_use_case, booking_repo, notifier, clock
    ):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        first = await cancel_use_case.execute(created.id, "Travelling abroad", USER)
        clock.advance(hours=1)
        second = await cancel_use_case.execute(created.id, "Travelling abroad", USER)

        assert first.status == BookingStatus.CANCELLED
        assert second.status == BookingStatus.CANCELLED
        assert second.cancelled_at == first.cancelled_at == NOW
        assert second.cancellation_reason == "Travelling abroad"
        assert notifier.sent.count(("booking_cancelled", created.id)) == 1

    async def test_guest_booking_cancel_records_guest_actor(
        self, create_use_case, cancel_use_case, booking_repo
    ):
        created = await _create(create_use_case, guest_booking_payload(), actor=None)

        await cancel_use_case.execute(created.id, "Changed my plans", None)

        assert (await booking_repo.get(created.id)).cancelled_by == "guest"

    async def test_picked_up_booking_cannot_be_cancelled(
        self, create_use_case, cancel_use_case, advance_use_case, booking_repo
    ):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)
        await advance_use_case.execute(created.id, BookingStatus.PICKED_UP)

        with pytest.raises(BookingNotModifiableError):
            await cancel_use_case.execute(created.id, "Please cancel this", USER)


class TestAdvanceStatus:
    async def test_operational_progression(self, create_use_case, advance_use_case, booking_repo):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        for target in (
            BookingStatus.PICKED_UP,
            BookingStatus.IN_PROGRESS,
            BookingStatus.READY,
            BookingStatus.DELIVERED,
        ):
            response = await advance_use_case.execute(created.id, target)
            assert response.status == target

    async def test_cannot_skip_payment(self, create_use_case, advance_use_case):
        created = await _create(create_use_case)

        with pytest.raises(InvalidBookingTransitionError):
            await advance_use_case.execute(created.id, BookingStatus.PICKED_UP)
        with pytest.raises(InvalidBookingTransitionError):
            await advance_use_case.execute(created.id, BookingStatus.CONFIRMED)

    async def test_cancellation_has_its_own_command(self, create_use_case, advance_use_case):
        created = await _create(create_use_case)

        with pytest.raises(ValidationError):
            await advance_use_case.execute(created.id, BookingStatus.CANCELLED)

    async def test_past_due_can_be_lifted(self, create_use_case, advance_use_case, booking_repo):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        await advance_use_case.execute(created.id, BookingStatus.PAST_DUE)
        response = await advance_use_case.execute(created.id, BookingStatus.CONFIRMED)

        assert response.status == BookingStatus.CONFIRMED


class TestCheckout:
    async def test_creates_session_once_per_booking(
        self, create_use_case, checkout_use_case, booking_repo, stripe_gateway
    ):
        created = await _create(create_use_case)

        first = await checkout_use_case.execute(created.id, USER)
        second = await checkout_use_case.execute(created.id, USER)

        assert first.session_id == second.session_id
        assert len(stripe_gateway.checkout_sessions) == 1
        request, _ = stripe_gateway.checkout_sessions[0]
        assert request.metadata["booking_id"] == created.id
        assert request.line_items[0].unit_amount_cents == 1250
        assert request.cancel_url == f"https://laundry.test/booking/{created.id}"
        stored = await booking_repo.get(created.id)
        assert stored.stripe_checkout_session_id == first.session_id

    async def test_guest_checkout_prefills_email(self, create_use_case, checkout_use_case, stripe_gateway):
        created = await _create(create_use_case, guest_booking_payload(), actor=None)

        await checkout_use_case.execute(created.id, None)

        request, _ = stripe_gateway.checkout_sessions[0]
        assert request.customer_email == "alex.doe@example.com"

    async def test_paid_booking_is_not_payable(self, create_use_case, checkout_use_case, booking_repo):
        created = await _create(create_use_case)
        await _confirm(booking_repo, created.id)

        with pytest.raises(BookingNotPayableError):
            await checkout_use_case.execute(created.id, USER)


class TestConcurrentWrites:
    async def test_stale_cancel_cannot_overwrite_a_payment(self, create_use_case, booking_repo):
        created = await _create(create_use_case)
        cancelling = await booking_repo.get(created.id)
        paying = await booking_repo.get(created.id)

        paying.record_payment_success(NOW, payment_intent_id="pi_1")
        await booking_repo.save(paying)
        cancelling.cancel("Plans changed at short notice", USER, NOW)

        with pytest.raises(ConcurrentModificationError):
            await booking_repo.save(cancelling)

        stored = await booking_repo.get(created.id)
        assert stored.status == BookingStatus.CONFIRMED
        assert stored.payment_status == BookingPaymentStatus.PAID
        assert stored.version == 1


async def test_get_booking_checks_ownership(create_use_case, booking_repo):
    created = await _create(create_use_case)
    use_case = GetBookingUseCase(booking_repo=booking_repo)

    response = await use_case.execute(created.id, USER)

    assert response.booking_number == created.booking_number
    assert response.is_guest is False
    with pytest.raises(ForbiddenError):
        await use_case.execute(created.id, None)
