"""
Infrastructure layer of the laundry booking engine.

Concrete adapters for the application ports.

Layout:
- db/: SQLAlchemy Core tables, SQL repositories, transactions, retries
- gateways/: Stripe SDK and the HTTP notification hook
- in_memory/: adapters for development mode and tests
"""

# Database
from app.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from app.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from app.infrastructure.db.repositories.service_catalog_sql import ServiceCatalogSQL
from app.infrastructure.db.repositories.slot_repo_sql import SlotRepoSQL
from app.infrastructure.db.repositories.subscription_repo_sql import SubscriptionRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager

# Gateways
from app.infrastructure.gateways.notifier_http import HTTPBookingNotifier
from app.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal

# In-Memory (for development and testing)
from app.infrastructure.in_memory import (
    InMemoryBookingRepo,
    InMemoryPaymentRepo,
    InMemoryServiceCatalog,
    InMemorySlotRepo,
    InMemoryStripeGateway,
    InMemorySubscriptionRepo,
    InMemoryTransactionManager,
    RecordingNotifier,
)

__all__ = [
    # SQL
    "BookingRepoSQL",
    "SlotRepoSQL",
    "ServiceCatalogSQL",
    "SubscriptionRepoSQL",
    "PaymentRepoSQL",
    "SQLAlchemyTransactionManager",
    # Gateways
    "StripeGatewayReal",
    "HTTPBookingNotifier",
    # In-Memory
    "InMemoryBookingRepo",
    "InMemorySlotRepo",
    "InMemoryServiceCatalog",
    "InMemorySubscriptionRepo",
    "InMemoryPaymentRepo",
    "InMemoryStripeGateway",
    "RecordingNotifier",
    "InMemoryTransactionManager",
]
