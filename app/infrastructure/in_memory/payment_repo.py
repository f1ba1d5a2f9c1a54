import copy
from typing import Sequence

from app.application.interfaces.payment_repo import PaymentRepo
from app.domain.entities.payment import SubscriptionPayment
from app.infrastructure.in_memory._store import SnapshotStore


class InMemoryPaymentRepo(PaymentRepo, SnapshotStore):
    def __init__(self) -> None:
        self.payments: dict[str, SubscriptionPayment] = {}

    async def get_by_invoice(self, stripe_invoice_id: str) -> SubscriptionPayment | None:
        payment = self.payments.get(stripe_invoice_id)
        return copy.deepcopy(payment) if payment else None

    async def add(self, payment: SubscriptionPayment) -> None:
        if payment.stripe_invoice_id in self.payments:
            raise ValueError(f"Invoice already recorded: {payment.stripe_invoice_id}")
        self.payments[payment.stripe_invoice_id] = copy.deepcopy(payment)

    async def save(self, payment: SubscriptionPayment) -> None:
        self.payments[payment.stripe_invoice_id] = copy.deepcopy(payment)

    async def list_for_subscription(self, subscription_id: str) -> Sequence[SubscriptionPayment]:
        return [
            copy.deepcopy(payment)
            for payment in self.payments.values()
            if payment.subscription_id == subscription_id
        ]
