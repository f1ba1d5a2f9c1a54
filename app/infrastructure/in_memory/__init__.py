"""In-memory adapters for development mode and tests."""

from app.infrastructure.in_memory.booking_repo import InMemoryBookingRepo
from app.infrastructure.in_memory.credit_repo import InMemoryCreditUsageRepo
from app.infrastructure.in_memory.notifier import RecordingNotifier
from app.infrastructure.in_memory.payment_repo import InMemoryPaymentRepo
from app.infrastructure.in_memory.service_catalog import InMemoryServiceCatalog
from app.infrastructure.in_memory.slot_repo import InMemorySlotRepo
from app.infrastructure.in_memory.stripe_gateway import StubStripeGateway as InMemoryStripeGateway
from app.infrastructure.in_memory.subscription_repo import InMemorySubscriptionRepo
from app.infrastructure.in_memory.transaction_manager import InMemoryTransactionManager

__all__ = [
    # Repositories
    "InMemoryBookingRepo",
    "InMemorySlotRepo",
    "InMemoryServiceCatalog",
    "InMemorySubscriptionRepo",
    "InMemoryPaymentRepo",
    "InMemoryCreditUsageRepo",
    # Gateways
    "InMemoryStripeGateway",
    "RecordingNotifier",
    # Infrastructure
    "InMemoryTransactionManager",
]
