"""Booking entity - aggregate root of the booking lifecycle."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from app.domain.errors import (
    BookingNotModifiableError,
    ForbiddenError,
    InvalidBookingTransitionError,
)
from app.domain.value_objects.money import Money
from app.domain.value_objects.scheduling import SchedulingMode, SlotSchedule


class BookingStatus(str, Enum):
    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked_up"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


class BookingPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class ServiceClass(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"


_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED, BookingStatus.CANCELLED}
    ),
    BookingStatus.PENDING_PAYMENT: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.PICKED_UP, BookingStatus.CANCELLED, BookingStatus.PAST_DUE}
    ),
    BookingStatus.PAST_DUE: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.PICKED_UP: frozenset({BookingStatus.IN_PROGRESS}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.READY}),
    BookingStatus.READY: frozenset({BookingStatus.DELIVERED}),
    BookingStatus.DELIVERED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

MODIFIABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
CANCELLABLE_STATUSES = frozenset(
    status for status, targets in _TRANSITIONS.items() if BookingStatus.CANCELLED in targets
)
# A successful payment moves these to confirmed; later states keep their status.
_CONFIRMABLE_ON_PAYMENT = frozenset(
    {BookingStatus.PENDING, BookingStatus.PENDING_PAYMENT, BookingStatus.PAST_DUE}
)


@dataclass(frozen=True)
class GuestContact:
    email: str
    first_name: str
    last_name: str
    phone: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class GuestAddress:
    street_address: str
    city: str
    postal_code: str
    building_info: str | None = None
    access_instructions: str | None = None


@dataclass(frozen=True)
class RegisteredOwner:
    user_id: str
    pickup_address_id: str
    delivery_address_id: str


@dataclass(frozen=True)
class GuestOwner:
    contact: GuestContact
    pickup_address: GuestAddress
    delivery_address: GuestAddress


BookingOwner = RegisteredOwner | GuestOwner


@dataclass(frozen=True)
class BookingItem:
    """A booked service line. The unit price is the one captured at creation."""

    service_id: str
    service_name: str
    quantity: int
    unit_price_cents: int

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"quantity must be at least 1: {self.quantity}")
        if self.unit_price_cents < 0:
            raise ValueError(f"unit price cannot be negative: {self.unit_price_cents}")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass
class Booking:
    """
    A single laundry order: pickup, processing and delivery.

    The owner and the schedule are sum types, so a booking always has exactly
    one owner kind and exactly one scheduling mode. Line items are fixed at
    creation; only addresses, schedule and instructions change afterwards.
    """

    id: str
    booking_number: str
    owner: BookingOwner
    schedule: SchedulingMode
    items: list[BookingItem]
    service_class: ServiceClass = ServiceClass.STANDARD
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    payment_status: BookingPaymentStatus = BookingPaymentStatus.PENDING
    currency: str = "eur"
    total_amount_cents: int = 0
    total_amount: float = 0.0
    special_instructions: str | None = None

    # Subscription credit applied at creation; the discount is deducted from the item subtotal.
    subscription_id: str | None = None
    used_subscription_credit: bool = False
    credit_discount_cents: int = 0
    booking_weight_kg: float | None = None

    stripe_checkout_session_id: str | None = None
    stripe_payment_intent_id: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    version: int = 0

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("a booking needs at least one item")
        self._sync_totals()

    # === Properties ===

    @property
    def user_id(self) -> str | None:
        return self.owner.user_id if isinstance(self.owner, RegisteredOwner) else None

    @property
    def is_guest(self) -> bool:
        return isinstance(self.owner, GuestOwner)

    @property
    def uses_slots(self) -> bool:
        return isinstance(self.schedule, SlotSchedule)

    @property
    def subtotal_amount_cents(self) -> int:
        return sum(item.line_total_cents for item in self.items)

    @property
    def total(self) -> Money:
        return Money(cents=self.total_amount_cents, currency=self.currency)

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    # === State machine ===

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in _TRANSITIONS[self.status]

    def transition_to(self, target: BookingStatus, now: datetime) -> None:
        if not self.can_transition_to(target):
            raise InvalidBookingTransitionError(self.id, self.status.value, target.value)
        self.status = target
        self.updated_at = now

    # === Ownership and change window ===

    def ensure_owned_by(self, actor_user_id: str | None) -> None:
        """Authenticated bookings may only be changed by their owner."""
        if isinstance(self.owner, RegisteredOwner) and actor_user_id != self.owner.user_id:
            raise ForbiddenError()

    def ensure_modifiable(self, pickup_date: date, today: date) -> None:
        if self.status not in MODIFIABLE_STATUSES:
            raise BookingNotModifiableError(
                self.id, f"status '{self.status.value}' does not allow changes"
            )
        if pickup_date <= today:
            raise BookingNotModifiableError(self.id, "pickup date is not in the future")

    def ensure_cancellable(self, pickup_date: date, today: date) -> None:
        if self.status not in CANCELLABLE_STATUSES:
            raise BookingNotModifiableError(
                self.id, f"status '{self.status.value}' does not allow cancellation"
            )
        if pickup_date <= today:
            raise BookingNotModifiableError(self.id, "pickup date is not in the future")

    # === User initiated changes ===

    def reschedule(self, schedule: SchedulingMode, now: datetime) -> None:
        self.schedule = schedule
        self.updated_at = now

    def change_owner(self, owner: BookingOwner, now: datetime) -> None:
        if type(owner) is not type(self.owner):
            raise ValueError("the owner kind of a booking cannot change")
        if isinstance(owner, RegisteredOwner) and owner.user_id != self.owner.user_id:
            raise ValueError("the owning user of a booking cannot change")
        self.owner = owner
        self.updated_at = now

    def update_instructions(self, instructions: str | None, now: datetime) -> None:
        self.special_instructions = instructions
        self.updated_at = now

    def cancel(self, reason: str, cancelled_by: str | None, now: datetime) -> None:
        self.transition_to(BookingStatus.CANCELLED, now)
        self.cancelled_at = now
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by

    # === Payment reconciliation ===

    def record_payment_success(
        self,
        now: datetime,
        checkout_session_id: str | None = None,
        payment_intent_id: str | None = None,
    ) -> bool:
        """
        Apply a successful payment. Safe to repeat: paid_at is only stamped once.

        Returns True when the booking moved to confirmed by this call.
        """
        self.payment_status = BookingPaymentStatus.PAID
        if self.paid_at is None:
            self.paid_at = now
        if checkout_session_id:
            self.stripe_checkout_session_id = checkout_session_id
        if payment_intent_id:
            self.stripe_payment_intent_id = payment_intent_id
        self.updated_at = now
        if self.status in _CONFIRMABLE_ON_PAYMENT:
            self.status = BookingStatus.CONFIRMED
            return True
        return False

    def record_payment_failure(self, now: datetime, payment_intent_id: str | None = None) -> None:
        """A failed attempt never changes the booking status, nor undoes a payment."""
        if self.payment_status == BookingPaymentStatus.PAID:
            return
        self.payment_status = BookingPaymentStatus.FAILED
        if payment_intent_id:
            self.stripe_payment_intent_id = payment_intent_id
        self.updated_at = now

    def apply_subscription_credit(
        self, subscription_id: str, weight_kg: float, discount_cents: int, now: datetime
    ) -> None:
        """The discount never exceeds the item subtotal."""
        self.subscription_id = subscription_id
        self.used_subscription_credit = True
        self.booking_weight_kg = weight_kg
        self.credit_discount_cents = min(discount_cents, self.subtotal_amount_cents)
        self.updated_at = now
        self._sync_totals()

    def attach_checkout_session(self, session_id: str, now: datetime) -> None:
        self.stripe_checkout_session_id = session_id
        self.updated_at = now

    # === Internals ===

    def _sync_totals(self) -> None:
        subtotal = Money.zero(self.currency)
        for item in self.items:
            subtotal = subtotal + Money(cents=item.unit_price_cents, currency=self.currency) * item.quantity
        total = Money(cents=max(subtotal.cents - self.credit_discount_cents, 0), currency=self.currency)
        self.total_amount_cents = total.cents
        self.total_amount = total.major

