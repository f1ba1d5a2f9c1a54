from typing import Sequence

from app.domain.entities.payment import SubscriptionPayment


class PaymentRepo:
    async def get_by_invoice(self, stripe_invoice_id: str) -> SubscriptionPayment | None:
        raise NotImplementedError

    async def add(self, payment: SubscriptionPayment) -> None:
        raise NotImplementedError

    async def save(self, payment: SubscriptionPayment) -> None:
        raise NotImplementedError

    async def list_for_subscription(self, subscription_id: str) -> Sequence[SubscriptionPayment]:
        raise NotImplementedError
