"""Ports of the application layer."""

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.credit_repo import CreditUsageRepo
from app.application.interfaces.clock import Clock, FakeClock, SystemClock
from app.application.interfaces.notifier import BookingNotifier
from app.application.interfaces.payment_repo import PaymentRepo
from app.application.interfaces.service_catalog import ServiceCatalog
from app.application.interfaces.slot_repo import SlotRepo
from app.application.interfaces.stripe_gateway import (
    CheckoutLineItem,
    CheckoutSessionRequest,
    CheckoutSessionResult,
    StripeGateway,
)
from app.application.interfaces.subscription_repo import SubscriptionRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import (
    FakeUUIDGenerator,
    RealUUIDGenerator,
    UUIDGenerator,
)

__all__ = [
    # Repositories
    "BookingRepo",
    "SlotRepo",
    "ServiceCatalog",
    "SubscriptionRepo",
    "PaymentRepo",
    "CreditUsageRepo",
    # Gateways
    "StripeGateway",
    "CheckoutLineItem",
    "CheckoutSessionRequest",
    "CheckoutSessionResult",
    "BookingNotifier",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "UUIDGenerator",
    "RealUUIDGenerator",
    "FakeUUIDGenerator",
]
