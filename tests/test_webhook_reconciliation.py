"""Stripe webhook reconciliation against the in-memory stores."""

from datetime import timedelta

import pytest

from app.application.use_cases.handle_stripe_webhook import WebhookOutcome
from app.domain.constants import SUPERSEDED_SUBSCRIPTION_REASON
from app.domain.entities.booking import (
    Booking,
    BookingItem,
    BookingPaymentStatus,
    BookingStatus,
    RegisteredOwner,
)
from app.domain.entities.payment import PaymentStatus
from app.domain.entities.subscription import (
    ProviderSubscription,
    Subscription,
    SubscriptionStatus,
)
from app.domain.errors import WebhookPayloadError, WebhookSignatureError
from app.domain.value_objects import SlotSchedule
from conftest import NOW, sign_payload, stripe_event

PERIOD_START = int(NOW.timestamp())
PERIOD_END = int((NOW + timedelta(days=30)).timestamp())


def _booking(booking_id: str = "b-1", status: BookingStatus = BookingStatus.PENDING_PAYMENT) -> Booking:
    return Booking(
        id=booking_id,
        booking_number="BK-20260302-000001",
        owner=RegisteredOwner(user_id="user-1", pickup_address_id="a1", delivery_address_id="a2"),
        schedule=SlotSchedule(pickup_slot_id="pickup-1", delivery_slot_id="delivery-d4-late"),
        items=[BookingItem(service_id="svc-wash", service_name="Wash & fold", quantity=2, unit_price_cents=1250)],
        status=status,
        created_at=NOW,
        updated_at=NOW,
    )


def _subscription(local_id: str, stripe_id: str, user_id: str = "user-1") -> Subscription:
    snapshot = ProviderSubscription(
        stripe_subscription_id=stripe_id,
        stripe_customer_id="cus_1",
        status=SubscriptionStatus.ACTIVE,
        current_period_start=NOW,
        current_period_end=NOW + timedelta(days=30),
    )
    return Subscription.from_provider(local_id, user_id, "plan-monthly", snapshot, NOW)


def _stripe_subscription(stripe_id: str, status: str = "active", **extra) -> dict:
    subscription = {
        "id": stripe_id,
        "object": "subscription",
        "customer": "cus_1",
        "status": status,
        "current_period_start": PERIOD_START,
        "current_period_end": PERIOD_END,
        "cancel_at_period_end": False,
        "metadata": {},
    }
    subscription.update(extra)
    return subscription


def _invoice(invoice_id: str = "in_1", subscription: str = "sub_1", **extra) -> dict:
    invoice = {
        "id": invoice_id,
        "object": "invoice",
        "subscription": subscription,
        "amount_paid": 999,
        "amount_due": 999,
        "currency": "EUR",
        "status_transitions": {"paid_at": PERIOD_START},
    }
    invoice.update(extra)
    return invoice


def _subscription_checkout(session_id: str, stripe_id: str, plan_id: str, user_id: str = "user-1") -> dict:
    return {
        "id": session_id,
        "object": "checkout.session",
        "mode": "subscription",
        "subscription": stripe_id,
        "metadata": {"userId": user_id, "planId": plan_id},
    }


async def _deliver(use_case, event_type: str, obj: dict, event_id: str = "evt_1") -> WebhookOutcome:
    payload = stripe_event(event_type, obj, event_id)
    return await use_case.execute(payload.encode("utf-8"), sign_payload(payload))


class TestBookingPayments:
    async def test_checkout_completed_confirms_booking_once(self, webhook_use_case, booking_repo, notifier, clock):
        booking_repo.bookings["b-1"] = _booking()
        session = {
            "id": "cs_1",
            "object": "checkout.session",
            "payment_intent": "pi_1",
            "metadata": {"booking_id": "b-1"},
        }

        first = await _deliver(webhook_use_case, "checkout.session.completed", session)
        clock.advance(minutes=10)
        replay = await _deliver(webhook_use_case, "checkout.session.completed", session)

        assert first == replay == WebhookOutcome.PROCESSED
        stored = booking_repo.bookings["b-1"]
        assert stored.status == BookingStatus.CONFIRMED
        assert stored.payment_status == BookingPaymentStatus.PAID
        assert stored.paid_at == NOW
        assert stored.stripe_checkout_session_id == "cs_1"
        assert stored.stripe_payment_intent_id == "pi_1"
        assert notifier.sent == [("booking_confirmed", "b-1")]

    async def test_camel_case_metadata_is_accepted(self, webhook_use_case, booking_repo):
        booking_repo.bookings["b-1"] = _booking()
        intent = {"id": "pi_1", "object": "payment_intent", "metadata": {"bookingId": "b-1"}}

        outcome = await _deliver(webhook_use_case, "payment_intent.succeeded", intent)

        assert outcome == WebhookOutcome.PROCESSED
        assert booking_repo.bookings["b-1"].status == BookingStatus.CONFIRMED

    async def test_payment_failure_keeps_booking_status(self, webhook_use_case, booking_repo, notifier):
        booking_repo.bookings["b-1"] = _booking()
        intent = {
            "id": "pi_1",
            "object": "payment_intent",
            "metadata": {"booking_id": "b-1"},
            "last_payment_error": {"code": "card_declined", "decline_code": "insufficient_funds"},
        }

        outcome = await _deliver(webhook_use_case, "payment_intent.payment_failed", intent)

        stored = booking_repo.bookings["b-1"]
        assert outcome == WebhookOutcome.PROCESSED
        assert stored.status == BookingStatus.PENDING_PAYMENT
        assert stored.payment_status == BookingPaymentStatus.FAILED
        assert notifier.sent == []

    async def test_late_failure_does_not_undo_payment(self, webhook_use_case, booking_repo):
        booking_repo.bookings["b-1"] = _booking()
        ok = {"id": "pi_ok", "object": "payment_intent", "metadata": {"booking_id": "b-1"}}
        failed = {"id": "pi_bad", "object": "payment_intent", "metadata": {"booking_id": "b-1"}}

        await _deliver(webhook_use_case, "payment_intent.succeeded", ok, "evt_ok")
        await _deliver(webhook_use_case, "payment_intent.payment_failed", failed, "evt_bad")

        stored = booking_repo.bookings["b-1"]
        assert stored.payment_status == BookingPaymentStatus.PAID
        assert stored.status == BookingStatus.CONFIRMED

    async def test_payment_after_cancellation_keeps_booking_cancelled(self, webhook_use_case, booking_repo, notifier):
        booking_repo.bookings["b-1"] = _booking(status=BookingStatus.CANCELLED)
        intent = {"id": "pi_1", "object": "payment_intent", "metadata": {"booking_id": "b-1"}}

        await _deliver(webhook_use_case, "payment_intent.succeeded", intent)

        stored = booking_repo.bookings["b-1"]
        assert stored.status == BookingStatus.CANCELLED
        assert stored.payment_status == BookingPaymentStatus.PAID
        assert notifier.sent == []

    async def test_replayed_payment_intent_is_applied_once(self, webhook_use_case, booking_repo, notifier, clock):
        booking_repo.bookings["b-1"] = _booking()
        intent = {"id": "pi_1", "object": "payment_intent", "metadata": {"booking_id": "b-1"}}

        first = await _deliver(webhook_use_case, "payment_intent.succeeded", intent, "evt_pi")
        clock.advance(minutes=30)
        replay = await _deliver(webhook_use_case, "payment_intent.succeeded", intent, "evt_pi")

        assert first == replay == WebhookOutcome.PROCESSED
        stored = booking_repo.bookings["b-1"]
        assert stored.status == BookingStatus.CONFIRMED
        assert stored.payment_status == BookingPaymentStatus.PAID
        assert stored.paid_at == NOW
        assert stored.stripe_payment_intent_id == "pi_1"
        assert notifier.sent == [("booking_confirmed", "b-1")]

    async def test_replayed_payment_failure_is_stable(self, webhook_use_case, booking_repo, notifier, clock):
        booking_repo.bookings["b-1"] = _booking()
        intent = {
            "id": "pi_1",
            "object": "payment_intent",
            "metadata": {"booking_id": "b-1"},
            "last_payment_error": {"code": "card_declined"},
        }

        first = await _deliver(webhook_use_case, "payment_intent.payment_failed", intent, "evt_fail")
        clock.advance(minutes=5)
        replay = await _deliver(webhook_use_case, "payment_intent.payment_failed", intent, "evt_fail")

        assert first == replay == WebhookOutcome.PROCESSED
        stored = booking_repo.bookings["b-1"]
        assert stored.status == BookingStatus.PENDING_PAYMENT
        assert stored.payment_status == BookingPaymentStatus.FAILED
        assert stored.paid_at is None
        assert stored.stripe_payment_intent_id == "pi_1"
        assert notifier.sent == []

    async def test_unknown_booking_is_skipped(self, webhook_use_case):
        session = {"id": "cs_1", "object": "checkout.session", "metadata": {"booking_id": "missing"}}

        outcome = await _deliver(webhook_use_case, "checkout.session.completed", session)

        assert outcome == WebhookOutcome.SKIPPED

    async def test_intent_without_booking_metadata_is_skipped(self, webhook_use_case):
        intent = {"id": "pi_1", "object": "payment_intent", "metadata": {}}

        outcome = await _deliver(webhook_use_case, "payment_intent.succeeded", intent)

        assert outcome == WebhookOutcome.SKIPPED


class TestSubscriptions:
    async def test_new_subscription_supersedes_the_live_one(
        self, webhook_use_case, subscription_repo, stripe_gateway
    ):
        await subscription_repo.add(_subscription("s-1", "sub_1"))
        stripe_gateway.register_subscription(_stripe_subscription("sub_2"))
        session = {
            "id": "cs_sub",
            "object": "checkout.session",
            "mode": "subscription",
            "subscription": "sub_2",
            "metadata": {"userId": "user-1", "planId": "plan-yearly"},
        }

        outcome = await _deliver(webhook_use_case, "checkout.session.completed", session)

        assert outcome == WebhookOutcome.PROCESSED
        old = subscription_repo.subscriptions["s-1"]
        assert old.cancelled is True
        assert old.status == SubscriptionStatus.CANCELED
        assert old.cancellation_reason == SUPERSEDED_SUBSCRIPTION_REASON
        live = await subscription_repo.list_live_for_user("user-1")
        assert [s.stripe_subscription_id for s in live] == ["sub_2"]
        assert live[0].plan_id == "plan-yearly"
        assert live[0].current_period_end == NOW + timedelta(days=30)

    async def test_replayed_activation_keeps_a_single_live_row(
        self, webhook_use_case, subscription_repo, stripe_gateway
    ):
        stripe_gateway.register_subscription(_stripe_subscription("sub_2"))
        session = {
            "id": "cs_sub",
            "object": "checkout.session",
            "subscription": "sub_2",
            "metadata": {"userId": "user-1", "planId": "plan-yearly"},
        }

        await _deliver(webhook_use_case, "checkout.session.completed", session)
        await _deliver(webhook_use_case, "checkout.session.completed", session)

        assert len(subscription_repo.subscriptions) == 1
        assert len(await subscription_repo.list_live_for_user("user-1")) == 1

    async def test_redelivered_older_checkout_keeps_newer_subscription_live(
        self, webhook_use_case, subscription_repo, stripe_gateway
    ):
        stripe_gateway.register_subscription(_stripe_subscription("sub_1", created=PERIOD_START))
        stripe_gateway.register_subscription(_stripe_subscription("sub_2", created=PERIOD_START + 60))
        first = _subscription_checkout("cs_1", "sub_1", "plan-monthly")
        second = _subscription_checkout("cs_2", "sub_2", "plan-quarterly")

        await _deliver(webhook_use_case, "checkout.session.completed", first, "evt_c1")
        await _deliver(webhook_use_case, "checkout.session.completed", second, "evt_c2")
        outcome = await _deliver(webhook_use_case, "checkout.session.completed", first, "evt_c1")

        assert outcome == WebhookOutcome.PROCESSED
        live = await subscription_repo.list_live_for_user("user-1")
        assert [s.stripe_subscription_id for s in live] == ["sub_2"]
        old = await subscription_repo.get_by_stripe_id("sub_1")
        assert old.cancelled is True
        assert old.status == SubscriptionStatus.CANCELED
        assert len(subscription_repo.subscriptions) == 2

    async def test_late_checkout_for_older_subscription_is_stored_superseded(
        self, webhook_use_case, subscription_repo, stripe_gateway
    ):
        stripe_gateway.register_subscription(_stripe_subscription("sub_1", created=PERIOD_START))
        stripe_gateway.register_subscription(_stripe_subscription("sub_2", created=PERIOD_START + 60))

        await _deliver(
            webhook_use_case,
            "checkout.session.completed",
            _subscription_checkout("cs_2", "sub_2", "plan-quarterly"),
            "evt_c2",
        )
        await _deliver(
            webhook_use_case,
            "checkout.session.completed",
            _subscription_checkout("cs_1", "sub_1", "plan-monthly"),
            "evt_c1",
        )

        live = await subscription_repo.list_live_for_user("user-1")
        assert [s.stripe_subscription_id for s in live] == ["sub_2"]
        late = await subscription_repo.get_by_stripe_id("sub_1")
        assert late.cancelled is True
        assert late.status == SubscriptionStatus.CANCELED
        assert late.cancellation_reason == SUPERSEDED_SUBSCRIPTION_REASON

    async def test_update_for_superseded_subscription_keeps_it_cancelled(
        self, webhook_use_case, subscription_repo, stripe_gateway
    ):
        await subscription_repo.add(_subscription("s-1", "sub_1"))
        stripe_gateway.register_subscription(_stripe_subscription("sub_2"))
        await _deliver(
            webhook_use_case,
            "checkout.session.completed",
            _subscription_checkout("cs_2", "sub_2", "plan-quarterly"),
            "evt_c2",
        )
        renewed_end = PERIOD_END + 30 * 24 * 3600

        outcome = await _deliver(
            webhook_use_case,
            "customer.subscription.updated",
            _stripe_subscription("sub_1", status="active", current_period_end=renewed_end),
            "evt_u1",
        )

        assert outcome == WebhookOutcome.PROCESSED
        stored = subscription_repo.subscriptions["s-1"]
        assert stored.cancelled is True
        assert stored.status == SubscriptionStatus.CANCELED
        assert stored.current_period_end == NOW + timedelta(days=60)
        live = await subscription_repo.list_live_for_user("user-1")
        assert [s.stripe_subscription_id for s in live] == ["sub_2"]

    async def test_other_users_are_untouched(self, webhook_use_case, subscription_repo, stripe_gateway):
        await subscription_repo.add(_subscription("s-9", "sub_9", user_id="user-9"))
        stripe_gateway.register_subscription(_stripe_subscription("sub_2"))
        session = {
            "id": "cs_sub",
            "object": "checkout.session",
            "subscription": "sub_2",
            "metadata": {"userId": "user-1", "planId": "plan-yearly"},
        }

        await _deliver(webhook_use_case, "checkout.session.completed", session)

        assert subscription_repo.subscriptions["s-9"].cancelled is False

    async def test_update_mirrors_provider_state(self, webhook_use_case, subscription_repo):
        await subscription_repo.add(_subscription("s-1", "sub_1"))
        updated = _stripe_subscription("sub_1", status="past_due", cancel_at_period_end=True)

        first = await _deliver(webhook_use_case, "customer.subscription.updated", updated, "evt_u1")
        second = await _deliver(webhook_use_case, "customer.subscription.updated", updated, "evt_u1")

        assert first == second == WebhookOutcome.PROCESSED
        stored = subscription_repo.subscriptions["s-1"]
        assert stored.status == SubscriptionStatus.PAST_DUE
        assert stored.cancel_at_period_end is True
        assert stored.cancelled is False

    async def test_update_for_unknown_subscription_with_metadata_creates_it(
        self, webhook_use_case, subscription_repo
    ):
        updated = _stripe_subscription("sub_3", metadata={"user_id": "user-1", "plan_id": "plan-monthly"})

        outcome = await _deliver(webhook_use_case, "customer.subscription.updated", updated)

        assert outcome == WebhookOutcome.PROCESSED
        live = await subscription_repo.list_live_for_user("user-1")
        assert [s.stripe_subscription_id for s in live] == ["sub_3"]

    async def test_update_for_unknown_subscription_without_metadata_is_skipped(self, webhook_use_case):
        outcome = await _deliver(
            webhook_use_case, "customer.subscription.updated", _stripe_subscription("sub_x")
        )

        assert outcome == WebhookOutcome.SKIPPED

    async def test_deletion_soft_cancels_and_is_idempotent(self, webhook_use_case, subscription_repo, clock):
        await subscription_repo.add(_subscription("s-1", "sub_1"))
        deleted = _stripe_subscription("sub_1", status="canceled", canceled_at=PERIOD_START)

        await _deliver(webhook_use_case, "customer.subscription.deleted", deleted)
        clock.advance(hours=2)
        await _deliver(webhook_use_case, "customer.subscription.deleted", deleted)

        stored = subscription_repo.subscriptions["s-1"]
        assert stored.cancelled is True
        assert stored.status == SubscriptionStatus.CANCELED
        assert stored.canceled_at == NOW

    async def test_update_after_deletion_does_not_revive(self, webhook_use_case, subscription_repo):
        await subscription_repo.add(_subscription("s-1", "sub_1"))

        await _deliver(
            webhook_use_case, "customer.subscription.deleted", _stripe_subscription("sub_1", status="canceled")
        )
        await _deliver(webhook_use_case, "customer.subscription.updated", _stripe_subscription("sub_1"))

        assert subscription_repo.subscriptions["s-1"].cancelled is True
        assert subscription_repo.subscriptions["s-1"].status == SubscriptionStatus.CANCELED


class TestInvoices:
    async def test_invoice_upsert_is_keyed_by_invoice_id(self, webhook_use_case, subscription_repo, payment_repo):
        await subscription_repo.add(_subscription("s-1", "sub_1"))

        await _deliver(webhook_use_case, "invoice.payment_succeeded", _invoice(), "evt_1")
        await _deliver(webhook_use_case, "invoice.payment_succeeded", _invoice(), "evt_2")

        payments = await payment_repo.list_for_subscription("s-1")
        assert len(payments) == 1
        assert payments[0].status == PaymentStatus.SUCCEEDED
        assert payments[0].amount_cents == 999
        assert payments[0].currency == "eur"
        assert payments[0].paid_at == NOW

    async def test_late_failure_never_downgrades_a_paid_invoice(
        self, webhook_use_case, subscription_repo, payment_repo
    ):
        await subscription_repo.add(_subscription("s-1", "sub_1"))

        await _deliver(webhook_use_case, "invoice.payment_succeeded", _invoice(), "evt_1")
        await _deliver(webhook_use_case, "invoice.payment_failed", _invoice(), "evt_2")

        payment = await payment_repo.get_by_invoice("in_1")
        assert payment.status == PaymentStatus.SUCCEEDED

    async def test_failure_then_success_upgrades(self, webhook_use_case, subscription_repo, payment_repo):
        await subscription_repo.add(_subscription("s-1", "sub_1"))

        await _deliver(webhook_use_case, "invoice.payment_failed", _invoice(), "evt_1")
        await _deliver(webhook_use_case, "invoice.payment_succeeded", _invoice(), "evt_2")

        payment = await payment_repo.get_by_invoice("in_1")
        assert payment.status == PaymentStatus.SUCCEEDED

    async def test_subscription_id_from_invoice_parent(self, webhook_use_case, subscription_repo, payment_repo):
        await subscription_repo.add(_subscription("s-1", "sub_1"))
        invoice = _invoice(
            subscription=None,
            parent={"type": "subscription_details", "subscription_details": {"subscription": "sub_1"}},
        )

        outcome = await _deliver(webhook_use_case, "invoice.payment_succeeded", invoice)

        assert outcome == WebhookOutcome.PROCESSED
        assert await payment_repo.get_by_invoice("in_1") is not None

    async def test_invoice_for_unknown_subscription_is_skipped(self, webhook_use_case, payment_repo):
        outcome = await _deliver(webhook_use_case, "invoice.payment_succeeded", _invoice(subscription="sub_nope"))

        assert outcome == WebhookOutcome.SKIPPED
        assert payment_repo.payments == {}

    async def test_one_off_invoice_is_skipped(self, webhook_use_case):
        outcome = await _deliver(webhook_use_case, "invoice.payment_succeeded", _invoice(subscription=None))

        assert outcome == WebhookOutcome.SKIPPED


class TestEnvelope:
    async def test_unknown_event_type_is_ignored(self, webhook_use_case):
        outcome = await _deliver(webhook_use_case, "customer.created", {"id": "cus_1"})

        assert outcome == WebhookOutcome.IGNORED

    async def test_bad_signature_is_rejected(self, webhook_use_case, booking_repo):
        booking_repo.bookings["b-1"] = _booking()
        payload = stripe_event(
            "payment_intent.succeeded", {"id": "pi_1", "metadata": {"booking_id": "b-1"}}
        )

        with pytest.raises(WebhookSignatureError):
            await webhook_use_case.execute(payload.encode("utf-8"), sign_payload(payload, secret="whsec_other"))

        assert booking_repo.bookings["b-1"].status == BookingStatus.PENDING_PAYMENT

    async def test_tampered_body_is_rejected(self, webhook_use_case):
        payload = stripe_event("customer.created", {"id": "cus_1"})
        header = sign_payload(payload)

        with pytest.raises(WebhookSignatureError):
            await webhook_use_case.execute(payload.replace("cus_1", "cus_2").encode("utf-8"), header)

    async def test_missing_signature(self, webhook_use_case):
        with pytest.raises(WebhookSignatureError):
            await webhook_use_case.execute(b'{"type": "customer.created"}', None)

    async def test_empty_body(self, webhook_use_case):
        with pytest.raises(WebhookPayloadError):
            await webhook_use_case.execute(b"", "t=1,v1=abc")

    async def test_signed_garbage_is_a_payload_error(self, webhook_use_case):
        payload = "not json"

        with pytest.raises(WebhookPayloadError):
            await webhook_use_case.execute(payload.encode("utf-8"), sign_payload(payload))
