"""Entities of the booking domain."""

from app.domain.entities.booking import (
    Booking,
    BookingItem,
    BookingOwner,
    BookingPaymentStatus,
    BookingStatus,
    GuestAddress,
    GuestContact,
    GuestOwner,
    RegisteredOwner,
    ServiceClass,
)
from app.domain.entities.credit import CreditUsage, WeeklyCredits
from app.domain.entities.logistic_slot import LogisticSlot, SlotRole
from app.domain.entities.payment import PaymentStatus, SubscriptionPayment
from app.domain.entities.service import ServiceOffering
from app.domain.entities.subscription import (
    ProviderSubscription,
    Subscription,
    SubscriptionStatus,
)

__all__ = [
    # Booking
    "Booking",
    "BookingItem",
    "BookingOwner",
    "BookingPaymentStatus",
    "BookingStatus",
    "GuestAddress",
    "GuestContact",
    "GuestOwner",
    "RegisteredOwner",
    "ServiceClass",
    # Slots and catalog
    "LogisticSlot",
    "SlotRole",
    "ServiceOffering",
    # Subscriptions
    "ProviderSubscription",
    "Subscription",
    "SubscriptionStatus",
    "PaymentStatus",
    "SubscriptionPayment",
    "CreditUsage",
    "WeeklyCredits",
]
