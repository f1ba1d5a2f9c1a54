from collections.abc import AsyncIterator
from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.clock import Clock, SystemClock
from app.application.interfaces.uuid_generator import RealUUIDGenerator
from app.application.use_cases.advance_booking_status import AdvanceBookingStatusUseCase
from app.application.use_cases.booking_draft_builder import BookingDraftBuilder
from app.application.use_cases.cancel_booking import CancelBookingUseCase
from app.application.use_cases.create_booking import CreateBookingUseCase
from app.application.use_cases.create_booking_checkout import CreateBookingCheckoutUseCase
from app.application.use_cases.get_booking import GetBookingUseCase
from app.application.use_cases.handle_stripe_webhook import HandleStripeWebhookUseCase
from app.application.use_cases.logistic_slots import (
    CreateLogisticSlotUseCase,
    GetDeliveryOptionsUseCase,
    ListLogisticSlotsUseCase,
)
from app.application.use_cases.modify_booking import ModifyBookingUseCase
from app.application.use_cases.subscription_credits import (
    CheckCreditUseCase,
    GetCreditHistoryUseCase,
    GetSubscriptionCreditsUseCase,
)
from app.config import Settings, get_settings
from app.infrastructure.db.engine import get_sessionmaker
from app.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from app.infrastructure.db.repositories.credit_repo_sql import CreditUsageRepoSQL
from app.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from app.infrastructure.db.repositories.service_catalog_sql import ServiceCatalogSQL
from app.infrastructure.db.repositories.slot_repo_sql import SlotRepoSQL
from app.infrastructure.db.repositories.subscription_repo_sql import SubscriptionRepoSQL
from app.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from app.infrastructure.gateways.notifier_http import HTTPBookingNotifier
from app.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal
from app.infrastructure.in_memory import (
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


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncIterator[AsyncSession | None]:
    if settings.use_in_memory:
        yield None
        return
    async with get_sessionmaker()() as session:
        yield session


def get_clock() -> Clock:
    return SystemClock()


def get_actor_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str | None:
    """Authenticated user id forwarded by the gateway; absent for guests."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


@lru_cache(maxsize=1)
def _in_memory_bundle():
    booking_repo = InMemoryBookingRepo()
    slot_repo = InMemorySlotRepo()
    subscription_repo = InMemorySubscriptionRepo()
    payment_repo = InMemoryPaymentRepo()
    credit_repo = InMemoryCreditUsageRepo()
    return {
        "booking_repo": booking_repo,
        "slot_repo": slot_repo,
        "service_catalog": InMemoryServiceCatalog(),
        "subscription_repo": subscription_repo,
        "payment_repo": payment_repo,
        "credit_repo": credit_repo,
        "stripe_gateway": InMemoryStripeGateway(),
        "notifier": RecordingNotifier(),
        "uuid_generator": RealUUIDGenerator(),
        "tx_manager": InMemoryTransactionManager(
            booking_repo, slot_repo, subscription_repo, payment_repo, credit_repo
        ),
    }


def _build_use_cases(
    settings: Settings,
    clock: Clock,
    *,
    booking_repo,
    slot_repo,
    service_catalog,
    subscription_repo,
    payment_repo,
    credit_repo,
    stripe_gateway,
    notifier,
    uuid_generator,
    tx_manager,
) -> dict:
    draft_builder = BookingDraftBuilder(
        slot_repo=slot_repo,
        service_catalog=service_catalog,
        clock=clock,
        currency=settings.currency,
        subscription_repo=subscription_repo,
        credit_repo=credit_repo,
    )
    return {
        "list_slots": ListLogisticSlotsUseCase(slot_repo=slot_repo, clock=clock),
        "delivery_options": GetDeliveryOptionsUseCase(slot_repo=slot_repo, clock=clock),
        "create_slot": CreateLogisticSlotUseCase(
            slot_repo=slot_repo,
            transaction_manager=tx_manager,
            clock=clock,
            uuid_generator=uuid_generator,
        ),
        "create_booking": CreateBookingUseCase(
            booking_repo=booking_repo,
            draft_builder=draft_builder,
            transaction_manager=tx_manager,
            notifier=notifier,
            clock=clock,
            uuid_generator=uuid_generator,
            currency=settings.currency,
            credit_repo=credit_repo,
        ),
        "get_booking": GetBookingUseCase(booking_repo=booking_repo),
        "modify_booking": ModifyBookingUseCase(
            booking_repo=booking_repo,
            draft_builder=draft_builder,
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "cancel_booking": CancelBookingUseCase(
            booking_repo=booking_repo,
            draft_builder=draft_builder,
            transaction_manager=tx_manager,
            notifier=notifier,
            clock=clock,
            reason_min_length=settings.cancellation_reason_min_length,
        ),
        "advance_status": AdvanceBookingStatusUseCase(
            booking_repo=booking_repo,
            transaction_manager=tx_manager,
            clock=clock,
        ),
        "create_checkout": CreateBookingCheckoutUseCase(
            booking_repo=booking_repo,
            stripe_gateway=stripe_gateway,
            transaction_manager=tx_manager,
            clock=clock,
            app_base_url=settings.app_base_url,
        ),
        "get_credits": GetSubscriptionCreditsUseCase(
            subscription_repo=subscription_repo,
            credit_repo=credit_repo,
            clock=clock,
            currency=settings.currency,
        ),
        "credit_history": GetCreditHistoryUseCase(
            credit_repo=credit_repo, currency=settings.currency
        ),
        "check_credit": CheckCreditUseCase(
            subscription_repo=subscription_repo, credit_repo=credit_repo, clock=clock
        ),
        "handle_webhook": HandleStripeWebhookUseCase(
            booking_repo=booking_repo,
            subscription_repo=subscription_repo,
            payment_repo=payment_repo,
            stripe_gateway=stripe_gateway,
            transaction_manager=tx_manager,
            notifier=notifier,
            clock=clock,
            uuid_generator=uuid_generator,
            stripe_webhook_secret=settings.stripe_webhook_secret,
            tolerance_seconds=settings.stripe_webhook_tolerance_seconds,
        ),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    if settings.use_in_memory:
        return _build_use_cases(settings, clock, **_in_memory_bundle())

    if not session:
        raise RuntimeError("DB session not available")

    return _build_use_cases(
        settings,
        clock,
        booking_repo=BookingRepoSQL(session),
        slot_repo=SlotRepoSQL(session),
        service_catalog=ServiceCatalogSQL(session),
        subscription_repo=SubscriptionRepoSQL(session),
        payment_repo=PaymentRepoSQL(session),
        credit_repo=CreditUsageRepoSQL(session),
        stripe_gateway=StripeGatewayReal(api_key=settings.stripe_api_key),
        notifier=HTTPBookingNotifier(
            webhook_url=settings.notification_webhook_url,
            timeout_seconds=settings.notification_timeout_seconds,
        ),
        uuid_generator=RealUUIDGenerator(),
        tx_manager=SQLAlchemyTransactionManager(session),
    )
