"""
Application layer of the laundry booking engine.

Use cases orchestrate the domain and talk to the outside world only through
the ports declared here.

Layout:
- use_cases/: booking commands, slot queries, Stripe reconciliation
- dtos/: translation of Stripe payloads into domain values
- interfaces/: ports implemented by the infrastructure adapters
"""

from app.application.interfaces import (
    BookingNotifier,
    BookingRepo,
    Clock,
    FakeClock,
    FakeUUIDGenerator,
    PaymentRepo,
    RealUUIDGenerator,
    ServiceCatalog,
    SlotRepo,
    StripeGateway,
    SubscriptionRepo,
    SystemClock,
    TransactionManager,
    UUIDGenerator,
)

__all__ = [
    # Interfaces - Repositories
    "BookingRepo",
    "SlotRepo",
    "ServiceCatalog",
    "SubscriptionRepo",
    "PaymentRepo",
    # Interfaces - Gateways
    "StripeGateway",
    "BookingNotifier",
    # Interfaces - Infrastructure
    "TransactionManager",
    # Interfaces - Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "UUIDGenerator",
    "RealUUIDGenerator",
    "FakeUUIDGenerator",
]
