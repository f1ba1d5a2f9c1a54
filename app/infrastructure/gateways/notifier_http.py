import logging
from typing import Any

import httpx

from app.application.interfaces.notifier import BookingNotifier
from app.domain.entities.booking import Booking, GuestOwner

logger = logging.getLogger(__name__)


class HTTPBookingNotifier(BookingNotifier):
    """
    Posts booking events to the transactional email function.

    Delivery is best effort: the booking is already committed, so transport
    failures are logged and not raised.
    """

    def __init__(self, webhook_url: str | None, timeout_seconds: float = 5.0) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout_seconds

    async def booking_created(self, booking: Booking) -> None:
        await self._send("booking_created", booking)

    async def booking_confirmed(self, booking: Booking) -> None:
        await self._send("booking_confirmed", booking)

    async def booking_cancelled(self, booking: Booking) -> None:
        await self._send("booking_cancelled", booking)

    def _payload(self, event: str, booking: Booking) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event": event,
            "booking_id": booking.id,
            "booking_number": booking.booking_number,
            "status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "total_amount": booking.total_amount,
            "currency": booking.currency,
        }
        if isinstance(booking.owner, GuestOwner):
            payload["guest_email"] = booking.owner.contact.email
            payload["guest_name"] = booking.owner.contact.full_name
        else:
            payload["user_id"] = booking.owner.user_id
        return payload

    async def _send(self, event: str, booking: Booking) -> None:
        if not self._webhook_url:
            logger.debug("Notification URL not configured, skipping", extra={"event": event})
            return
        log_extra = {"event": event, "booking_id": booking.id}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._webhook_url, json=self._payload(event, booking))
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning(
                "Booking notification timed out",
                extra={**log_extra, "timeout": self._timeout},
            )
            return
        except httpx.HTTPError as exc:
            logger.error("Booking notification failed", extra={**log_extra, "error": str(exc)})
            return
        logger.info("Booking notification sent", extra=log_extra)
