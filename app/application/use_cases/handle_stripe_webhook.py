import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from app.api.schemas.webhooks import StripeWebhookEnvelope
from app.application.dtos.stripe_payloads import (
    invoice_paid_at,
    invoice_subscription_id,
    metadata_value,
    object_id,
    provider_subscription,
)
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.notifier import BookingNotifier
from app.application.interfaces.payment_repo import PaymentRepo
from app.application.interfaces.stripe_gateway import StripeGateway
from app.application.interfaces.subscription_repo import SubscriptionRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.domain.constants import SUPERSEDED_SUBSCRIPTION_REASON
from app.domain.entities.payment import PaymentStatus, SubscriptionPayment
from app.domain.entities.subscription import (
    ProviderSubscription,
    Subscription,
    SubscriptionStatus,
)
from app.domain.errors import WebhookPayloadError, WebhookSignatureError


class StripeEventType(str, Enum):
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"


class WebhookOutcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    IGNORED = "ignored"


EventHandler = Callable[[StripeWebhookEnvelope], Awaitable[WebhookOutcome]]


class HandleStripeWebhookUseCase:
    """
    Reconciles bookings and subscriptions from Stripe events.

    Deliveries are at-least-once and unordered, so every branch is an upsert
    keyed by a Stripe identifier and runs in its own unit of work. A missing
    local row is logged and skipped; store or Stripe failures propagate so the
    endpoint answers 500 and Stripe retries.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        subscription_repo: SubscriptionRepo,
        payment_repo: PaymentRepo,
        stripe_gateway: StripeGateway,
        transaction_manager: TransactionManager,
        notifier: BookingNotifier,
        clock: Clock,
        uuid_generator: UUIDGenerator,
        stripe_webhook_secret: str | None,
        tolerance_seconds: int = 300,
    ) -> None:
        self._booking_repo = booking_repo
        self._subscription_repo = subscription_repo
        self._payment_repo = payment_repo
        self._stripe_gateway = stripe_gateway
        self._transaction_manager = transaction_manager
        self._notifier = notifier
        self._clock = clock
        self._uuid_generator = uuid_generator
        self._stripe_webhook_secret = stripe_webhook_secret
        self._tolerance_seconds = tolerance_seconds
        self._logger = logging.getLogger(__name__)
        self._handlers: dict[StripeEventType, EventHandler] = {
            StripeEventType.CHECKOUT_SESSION_COMPLETED: self._on_checkout_completed,
            StripeEventType.SUBSCRIPTION_UPDATED: self._on_subscription_updated,
            StripeEventType.SUBSCRIPTION_DELETED: self._on_subscription_deleted,
            StripeEventType.INVOICE_PAYMENT_SUCCEEDED: self._on_invoice_succeeded,
            StripeEventType.INVOICE_PAYMENT_FAILED: self._on_invoice_failed,
            StripeEventType.PAYMENT_INTENT_SUCCEEDED: self._on_payment_intent_succeeded,
            StripeEventType.PAYMENT_INTENT_FAILED: self._on_payment_intent_failed,
        }

    async def execute(self, raw_body: bytes, signature: str | None) -> WebhookOutcome:
        if not raw_body:
            raise WebhookPayloadError("Empty webhook body")
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        event_dict = await self._stripe_gateway.parse_webhook_event(
            payload=raw_body,
            signature_header=signature,
            webhook_secret=self._stripe_webhook_secret,
            tolerance_seconds=self._tolerance_seconds,
        )
        try:
            event = StripeWebhookEnvelope.model_validate(event_dict)
        except ValueError as exc:
            raise WebhookPayloadError("Invalid event payload") from exc

        try:
            event_type = StripeEventType(event.type)
        except ValueError:
            self._logger.info(
                "Unhandled Stripe event type acknowledged",
                extra={"stripe_event_id": event.id, "event_type": event.type},
            )
            return WebhookOutcome.IGNORED

        outcome = await self._handlers[event_type](event)
        self._logger.info(
            "Stripe webhook handled",
            extra={
                "stripe_event_id": event.id,
                "event_type": event.type,
                "outcome": outcome.value,
            },
        )
        return outcome

    # === Checkout ===

    async def _on_checkout_completed(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        session = event.object
        metadata = event.metadata

        booking_id = metadata_value(metadata, "booking_id", "bookingId")
        if booking_id:
            return await self._record_booking_payment(
                booking_id,
                event,
                checkout_session_id=session.get("id"),
                payment_intent_id=object_id(session.get("payment_intent")),
            )

        user_id = metadata_value(metadata, "userId", "user_id")
        plan_id = metadata_value(metadata, "planId", "plan_id")
        stripe_subscription_id = object_id(session.get("subscription"))
        if user_id and plan_id and stripe_subscription_id:
            # The event payload is not trusted as complete: fetch the subscription.
            snapshot = await self._stripe_gateway.retrieve_subscription(stripe_subscription_id)
            return await self._activate_subscription(user_id, plan_id, snapshot, event)

        self._logger.warning(
            "Checkout session without booking or subscription context, skipping",
            extra={"stripe_event_id": event.id, "checkout_session_id": session.get("id")},
        )
        return WebhookOutcome.SKIPPED

    # === Subscriptions ===

    async def _activate_subscription(
        self,
        user_id: str,
        plan_id: str,
        snapshot: ProviderSubscription,
        event: StripeWebhookEnvelope,
    ) -> WebhookOutcome:
        """
        Upsert the row for ``snapshot`` and keep at most one live row for the user.

        Only rows Stripe created earlier are superseded. A redelivered checkout
        for a row that was already superseded just refreshes its provider state,
        and a late checkout for an older subscription is stored already cancelled.
        """
        now = self._clock.now()
        async with self._transaction_manager.start():
            await self._subscription_repo.lock_user(user_id)
            existing = await self._subscription_repo.get_by_stripe_id(
                snapshot.stripe_subscription_id
            )
            if existing is not None and existing.cancelled:
                existing.apply_provider_state(snapshot, now)
                await self._subscription_repo.save(existing)
                self._logger.info(
                    "Subscription already superseded, provider state refreshed",
                    extra={
                        "stripe_event_id": event.id,
                        "user_id": user_id,
                        "stripe_subscription_id": snapshot.stripe_subscription_id,
                    },
                )
                return WebhookOutcome.PROCESSED

            live = await self._subscription_repo.list_live_for_user(user_id)
            newer = [
                row.stripe_subscription_id
                for row in live
                if row.stripe_subscription_id != snapshot.stripe_subscription_id
                and row.started_after(snapshot)
            ]
            superseded: list[str] = []
            if snapshot.status != SubscriptionStatus.CANCELED and not newer:
                superseded = await self._subscription_repo.soft_cancel_others(
                    user_id=user_id,
                    keep_stripe_subscription_id=snapshot.stripe_subscription_id,
                    reason=SUPERSEDED_SUBSCRIPTION_REASON,
                    now=now,
                )

            if existing is not None:
                subscription = existing
                subscription.apply_provider_state(snapshot, now)
            else:
                subscription = Subscription.from_provider(
                    subscription_id=self._uuid_generator.generate_uuid(),
                    user_id=user_id,
                    plan_id=plan_id,
                    snapshot=snapshot,
                    now=now,
                )
            if newer:
                subscription.soft_cancel(SUPERSEDED_SUBSCRIPTION_REASON, now)
            if existing is not None:
                await self._subscription_repo.save(subscription)
            else:
                await self._subscription_repo.add(subscription)

        self._logger.info(
            "Subscription activated" if not newer else "Older subscription recorded as superseded",
            extra={
                "stripe_event_id": event.id,
                "user_id": user_id,
                "plan_id": plan_id,
                "stripe_subscription_id": snapshot.stripe_subscription_id,
                "superseded": superseded,
                "newer": newer,
            },
        )
        return WebhookOutcome.PROCESSED

    async def _on_subscription_updated(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        snapshot = self._snapshot_from(event)
        async with self._transaction_manager.start():
            subscription = await self._subscription_repo.get_by_stripe_id(
                snapshot.stripe_subscription_id
            )
            if subscription is not None:
                subscription.apply_provider_state(snapshot, self._clock.now())
                await self._subscription_repo.save(subscription)
                return WebhookOutcome.PROCESSED

        if snapshot.user_id and snapshot.plan_id:
            return await self._activate_subscription(
                snapshot.user_id, snapshot.plan_id, snapshot, event
            )
        self._logger.warning(
            "Subscription not found for update, skipping",
            extra={
                "stripe_event_id": event.id,
                "stripe_subscription_id": snapshot.stripe_subscription_id,
            },
        )
        return WebhookOutcome.SKIPPED

    async def _on_subscription_deleted(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        snapshot = self._snapshot_from(event)
        async with self._transaction_manager.start():
            subscription = await self._subscription_repo.get_by_stripe_id(
                snapshot.stripe_subscription_id
            )
            if subscription is None:
                self._logger.warning(
                    "Subscription not found for deletion, skipping",
                    extra={
                        "stripe_event_id": event.id,
                        "stripe_subscription_id": snapshot.stripe_subscription_id,
                    },
                )
                return WebhookOutcome.SKIPPED
            now = self._clock.now()
            subscription.canceled_at = subscription.canceled_at or snapshot.canceled_at
            subscription.soft_cancel("deleted_by_provider", now)
            await self._subscription_repo.save(subscription)
        return WebhookOutcome.PROCESSED

    def _snapshot_from(self, event: StripeWebhookEnvelope) -> ProviderSubscription:
        if not event.object.get("id"):
            raise WebhookPayloadError("Subscription event without an id")
        return provider_subscription(event.object)

    # === Invoices ===

    async def _on_invoice_succeeded(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        return await self._record_invoice(event, PaymentStatus.SUCCEEDED)

    async def _on_invoice_failed(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        return await self._record_invoice(event, PaymentStatus.FAILED)

    async def _record_invoice(
        self, event: StripeWebhookEnvelope, status: PaymentStatus
    ) -> WebhookOutcome:
        invoice = event.object
        invoice_id = invoice.get("id")
        stripe_subscription_id = invoice_subscription_id(invoice)
        if not invoice_id or not stripe_subscription_id:
            self._logger.info(
                "Invoice is not tied to a subscription, skipping",
                extra={"stripe_event_id": event.id, "invoice_id": invoice_id},
            )
            return WebhookOutcome.SKIPPED

        succeeded = status == PaymentStatus.SUCCEEDED
        amount_cents = int(invoice.get("amount_paid" if succeeded else "amount_due") or 0)
        now = self._clock.now()
        async with self._transaction_manager.start():
            subscription = await self._subscription_repo.get_by_stripe_id(stripe_subscription_id)
            if subscription is None:
                self._logger.warning(
                    "Subscription not found for invoice, skipping",
                    extra={
                        "stripe_event_id": event.id,
                        "invoice_id": invoice_id,
                        "stripe_subscription_id": stripe_subscription_id,
                    },
                )
                return WebhookOutcome.SKIPPED

            incoming = SubscriptionPayment(
                id=self._uuid_generator.generate_uuid(),
                subscription_id=subscription.id,
                stripe_invoice_id=invoice_id,
                amount_cents=amount_cents,
                currency=(invoice.get("currency") or "eur").lower(),
                status=status,
                paid_at=invoice_paid_at(invoice) if succeeded else None,
                created_at=now,
                updated_at=now,
            )
            existing = await self._payment_repo.get_by_invoice(invoice_id)
            if existing is None:
                await self._payment_repo.add(incoming)
            else:
                existing.merge(incoming, now)
                await self._payment_repo.save(existing)

        log = self._logger.info if succeeded else self._logger.warning
        log(
            "Subscription invoice recorded",
            extra={
                "stripe_event_id": event.id,
                "invoice_id": invoice_id,
                "status": status.value,
                "amount_cents": amount_cents,
            },
        )
        return WebhookOutcome.PROCESSED

    # === One-off booking payments ===

    async def _on_payment_intent_succeeded(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        booking_id = metadata_value(event.metadata, "booking_id", "bookingId")
        if not booking_id:
            return self._skip_without_booking(event)
        return await self._record_booking_payment(
            booking_id, event, payment_intent_id=event.object.get("id")
        )

    async def _on_payment_intent_failed(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        booking_id = metadata_value(event.metadata, "booking_id", "bookingId")
        if not booking_id:
            return self._skip_without_booking(event)

        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                return self._skip_missing_booking(event, booking_id)
            # The booking status is left alone; a retry or staff follow-up decides what's next.
            booking.record_payment_failure(self._clock.now(), event.object.get("id"))
            await self._booking_repo.save(booking)

        error = event.object.get("last_payment_error") or {}
        self._logger.warning(
            "Booking payment failed",
            extra={
                "stripe_event_id": event.id,
                "booking_id": booking_id,
                "payment_status": booking.payment_status.value,
                "decline_code": error.get("decline_code") or error.get("code"),
            },
        )
        return WebhookOutcome.PROCESSED

    async def _record_booking_payment(
        self,
        booking_id: str,
        event: StripeWebhookEnvelope,
        checkout_session_id: str | None = None,
        payment_intent_id: str | None = None,
    ) -> WebhookOutcome:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                return self._skip_missing_booking(event, booking_id)
            confirmed = booking.record_payment_success(
                self._clock.now(),
                checkout_session_id=checkout_session_id,
                payment_intent_id=payment_intent_id,
            )
            await self._booking_repo.save(booking)

        if booking.is_cancelled:
            self._logger.warning(
                "Payment received for a cancelled booking, refund needs follow-up",
                extra={"stripe_event_id": event.id, "booking_id": booking.id},
            )
        self._logger.info(
            "Booking payment recorded",
            extra={
                "stripe_event_id": event.id,
                "booking_id": booking.id,
                "status": booking.status.value,
                "newly_confirmed": confirmed,
            },
        )
        if confirmed:
            await self._notifier.booking_confirmed(booking)
        return WebhookOutcome.PROCESSED

    def _skip_without_booking(self, event: StripeWebhookEnvelope) -> WebhookOutcome:
        self._logger.info(
            "Payment intent without booking metadata, skipping",
            extra={"stripe_event_id": event.id, "payment_intent_id": event.object.get("id")},
        )
        return WebhookOutcome.SKIPPED

    def _skip_missing_booking(self, event: StripeWebhookEnvelope, booking_id: str) -> WebhookOutcome:
        self._logger.warning(
            "Booking not found for payment event, skipping",
            extra={"stripe_event_id": event.id, "event_type": event.type, "booking_id": booking_id},
        )
        return WebhookOutcome.SKIPPED
