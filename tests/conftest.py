"""
Pytest configuration and shared fixtures.

Provides:
- a fixed clock and predictable ids
- in-memory adapters wired into the use cases
- a seeded service catalog and slot calendar
- Stripe-style signed webhook payloads
- a FastAPI TestClient running in in-memory mode
"""

import hashlib
import hmac
import json
import os
import time
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

# Settings are read once; configure them before the app is imported.
WEBHOOK_SECRET = "whsec_test_secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["USE_IN_MEMORY"] = "true"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.api.dependencies import _in_memory_bundle, get_clock  # noqa: E402
from app.application.interfaces.clock import FakeClock  # noqa: E402
from app.application.interfaces.uuid_generator import FakeUUIDGenerator  # noqa: E402
from app.application.use_cases.booking_draft_builder import BookingDraftBuilder  # noqa: E402
from app.application.use_cases.handle_stripe_webhook import HandleStripeWebhookUseCase  # noqa: E402
from app.domain.entities.booking import ServiceClass  # noqa: E402
from app.domain.entities.logistic_slot import LogisticSlot, SlotRole  # noqa: E402
from app.domain.entities.service import ServiceOffering  # noqa: E402
from app.infrastructure.in_memory import (  # noqa: E402
    InMemoryBookingRepo,
    InMemoryCreditUsageRepo,
    InMemoryPaymentRepo,
    InMemoryServiceCatalog,
    InMemorySlotRepo,
    InMemoryStripeGateway,
    InMemorySubscriptionRepo,
    InMemoryTransactionManager,
    RecordingNotifier,
)
from app.main import app  # noqa: E402


# Monday 2 March 2026, 09:00 UTC
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
TODAY = NOW.date()

WASH_AND_FOLD = ServiceOffering(
    id="svc-wash", name="Wash & fold", base_price=Decimal("12.50"), service_class=ServiceClass.STANDARD
)
SHIRT_IRONING = ServiceOffering(
    id="svc-iron", name="Shirt ironing", base_price=Decimal("3.20"), service_class=ServiceClass.STANDARD
)
EXPRESS_WASH = ServiceOffering(
    id="svc-express", name="Express wash", base_price=Decimal("20.00"), service_class=ServiceClass.EXPRESS
)


def make_slot(
    slot_id: str,
    role: SlotRole,
    slot_date: date,
    start_time: str,
    end_time: str,
    is_open: bool = True,
) -> LogisticSlot:
    return LogisticSlot(
        id=slot_id,
        role=role,
        slot_date=slot_date,
        start_time=start_time,
        end_time=end_time,
        is_open=is_open,
        created_at=NOW,
    )


# Pickup tomorrow 09:00-12:00; standard delivery allowed from day +4 12:00.
SLOTS = [
    make_slot("pickup-1", SlotRole.PICKUP, TODAY + timedelta(days=1), "09:00", "12:00"),
    make_slot("pickup-2", SlotRole.PICKUP, TODAY + timedelta(days=2), "14:00", "17:00"),
    make_slot("pickup-closed", SlotRole.PICKUP, TODAY + timedelta(days=1), "18:00", "21:00", is_open=False),
    make_slot("delivery-d2", SlotRole.DELIVERY, TODAY + timedelta(days=2), "17:00", "20:00"),
    make_slot("delivery-d4-early", SlotRole.DELIVERY, TODAY + timedelta(days=4), "10:00", "13:00"),
    make_slot("delivery-d4-late", SlotRole.DELIVERY, TODAY + timedelta(days=4), "17:00", "20:00"),
    make_slot("delivery-d6", SlotRole.DELIVERY, TODAY + timedelta(days=6), "10:00", "13:00"),
]


def seed(slot_repo: InMemorySlotRepo, service_catalog: InMemoryServiceCatalog) -> None:
    for slot in SLOTS:
        slot_repo.slots[slot.id] = slot
    for offering in (WASH_AND_FOLD, SHIRT_IRONING, EXPRESS_WASH):
        service_catalog.add(offering)


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the same way Stripe does."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_type: str, obj: dict, event_id: str = "evt_test_1") -> str:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "livemode": False,
            "created": int(time.time()),
            "data": {"object": obj},
        }
    )


def slot_booking_payload(**overrides) -> dict:
    payload = {
        "pickupSlotId": "pickup-1",
        "deliverySlotId": "delivery-d4-late",
        "pickupAddressId": "addr-home",
        "deliveryAddressId": "addr-office",
        "items": [{"serviceId": "svc-wash", "quantity": 2}],
        "specialInstructions": "Ring twice",
    }
    payload.update(overrides)
    return payload


def guest_booking_payload(**overrides) -> dict:
    payload = {
        "pickupDate": str(TODAY + timedelta(days=1)),
        "pickupTimeSlot": "09:00-12:00",
        "guestContact": {
            "email": "Alex.Doe@Example.com",
            "firstName": "Alex",
            "lastName": "Doe",
            "phone": "+34600111222",
        },
        "guestPickupAddress": {
            "streetAddress": "Calle Mayor 1",
            "city": "Madrid",
            "postalCode": "28013",
        },
        "guestDeliveryAddress": {
            "streetAddress": "Calle Mayor 1",
            "city": "Madrid",
            "postalCode": "28013",
            "buildingInfo": "3B",
        },
        "items": [{"serviceId": "svc-iron", "quantity": 5}],
    }
    payload.update(overrides)
    return payload


# ============================================================================
# USE CASE FIXTURES
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def uuid_generator() -> FakeUUIDGenerator:
    return FakeUUIDGenerator()


@pytest.fixture
def booking_repo() -> InMemoryBookingRepo:
    return InMemoryBookingRepo()


@pytest.fixture
def slot_repo() -> InMemorySlotRepo:
    return InMemorySlotRepo()


@pytest.fixture
def service_catalog() -> InMemoryServiceCatalog:
    return InMemoryServiceCatalog()


@pytest.fixture
def subscription_repo() -> InMemorySubscriptionRepo:
    return InMemorySubscriptionRepo()


@pytest.fixture
def payment_repo() -> InMemoryPaymentRepo:
    return InMemoryPaymentRepo()


@pytest.fixture
def credit_repo() -> InMemoryCreditUsageRepo:
    return InMemoryCreditUsageRepo()


@pytest.fixture
def stripe_gateway() -> InMemoryStripeGateway:
    return InMemoryStripeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def tx_manager(
    booking_repo, slot_repo, subscription_repo, payment_repo, credit_repo
) -> InMemoryTransactionManager:
    return InMemoryTransactionManager(
        booking_repo, slot_repo, subscription_repo, payment_repo, credit_repo
    )


@pytest.fixture
def seeded(slot_repo, service_catalog):
    seed(slot_repo, service_catalog)


@pytest.fixture
def draft_builder(
    slot_repo, service_catalog, clock, seeded, subscription_repo, credit_repo
) -> BookingDraftBuilder:
    return BookingDraftBuilder(
        slot_repo=slot_repo,
        service_catalog=service_catalog,
        clock=clock,
        subscription_repo=subscription_repo,
        credit_repo=credit_repo,
    )


@pytest.fixture
def webhook_use_case(
    booking_repo,
    subscription_repo,
    payment_repo,
    stripe_gateway,
    tx_manager,
    notifier,
    clock,
    uuid_generator,
) -> HandleStripeWebhookUseCase:
    return HandleStripeWebhookUseCase(
        booking_repo=booking_repo,
        subscription_repo=subscription_repo,
        payment_repo=payment_repo,
        stripe_gateway=stripe_gateway,
        transaction_manager=tx_manager,
        notifier=notifier,
        clock=clock,
        uuid_generator=uuid_generator,
        stripe_webhook_secret=WEBHOOK_SECRET,
    )


# ============================================================================
# HTTP CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def bundle():
    """Fresh in-memory adapters behind the API, seeded with slots and services."""
    _in_memory_bundle.cache_clear()
    adapters = _in_memory_bundle()
    seed(adapters["slot_repo"], adapters["service_catalog"])
    yield adapters
    _in_memory_bundle.cache_clear()


@pytest.fixture
def client(bundle, clock):
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
