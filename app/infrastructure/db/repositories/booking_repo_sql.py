from dataclasses import asdict
from typing import Any, Mapping

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.booking_repo import BookingRepo
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
from app.domain.errors import ConcurrentModificationError
from app.domain.value_objects.scheduling import (
    LegacySchedule,
    SchedulingMode,
    SlotSchedule,
    TimeRange,
)
from app.infrastructure.db.repositories._mapping import as_utc
from app.infrastructure.db.tables import booking_items, booking_sequences, bookings


class BookingRepoSQL(BookingRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def next_booking_sequence(self) -> int:
        result = await self._session.execute(insert(booking_sequences).values(created_at=func.now()))
        return int(result.inserted_primary_key[0])

    async def add(self, booking: Booking) -> None:
        await self._session.execute(insert(bookings).values(**self._row_values(booking)))
        await self._session.execute(
            insert(booking_items),
            [
                {
                    "booking_id": booking.id,
                    "service_id": item.service_id,
                    "service_name": item.service_name,
                    "quantity": item.quantity,
                    "unit_price_cents": item.unit_price_cents,
                }
                for item in booking.items
            ],
        )

    async def get(self, booking_id: str) -> Booking | None:
        result = await self._session.execute(select(bookings).where(bookings.c.id == booking_id))
        row = result.mappings().first()
        if not row:
            return None
        items_result = await self._session.execute(
            select(booking_items)
            .where(booking_items.c.booking_id == booking_id)
            .order_by(booking_items.c.id)
        )
        return self._map_booking(row, items_result.mappings().all())

    async def save(self, booking: Booking) -> None:
        values = self._row_values(booking)
        for immutable in ("id", "booking_number", "created_at", "currency", "version"):
            values.pop(immutable)
        # Keep the first paid_at ever written.
        values["paid_at"] = func.coalesce(bookings.c.paid_at, booking.paid_at)
        result = await self._session.execute(
            update(bookings)
            .where(bookings.c.id == booking.id, bookings.c.version == booking.version)
            .values(**values, version=bookings.c.version + 1)
        )
        if result.rowcount == 0:
            raise ConcurrentModificationError("Booking", booking.id)
        booking.version += 1
        result = await self._session.execute(
            select(bookings.c.paid_at).where(bookings.c.id == booking.id)
        )
        booking.paid_at = as_utc(result.scalar_one_or_none())

    def _row_values(self, booking: Booking) -> dict[str, Any]:
        values: dict[str, Any] = {
            "id": booking.id,
            "booking_number": booking.booking_number,
            "status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "service_type": booking.service_class.value,
            "user_id": None,
            "pickup_address_id": None,
            "delivery_address_id": None,
            "guest_contact": None,
            "guest_pickup_address": None,
            "guest_delivery_address": None,
            "pickup_slot_id": None,
            "delivery_slot_id": None,
            "pickup_date": None,
            "pickup_time_slot": None,
            "currency": booking.currency,
            "total_amount_cents": booking.total_amount_cents,
            "total_amount": booking.total_amount,
            "special_instructions": booking.special_instructions,
            "subscription_id": booking.subscription_id,
            "used_subscription_credit": booking.used_subscription_credit,
            "credit_discount_cents": booking.credit_discount_cents,
            "booking_weight_kg": booking.booking_weight_kg,
            "stripe_checkout_session_id": booking.stripe_checkout_session_id,
            "stripe_payment_intent_id": booking.stripe_payment_intent_id,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
            "paid_at": booking.paid_at,
            "cancelled_at": booking.cancelled_at,
            "cancellation_reason": booking.cancellation_reason,
            "cancelled_by": booking.cancelled_by,
            "version": booking.version,
        }
        owner = booking.owner
        if isinstance(owner, RegisteredOwner):
            values.update(
                user_id=owner.user_id,
                pickup_address_id=owner.pickup_address_id,
                delivery_address_id=owner.delivery_address_id,
            )
        else:
            values.update(
                guest_contact=asdict(owner.contact),
                guest_pickup_address=asdict(owner.pickup_address),
                guest_delivery_address=asdict(owner.delivery_address),
            )
        schedule = booking.schedule
        if isinstance(schedule, SlotSchedule):
            values.update(
                pickup_slot_id=schedule.pickup_slot_id,
                delivery_slot_id=schedule.delivery_slot_id,
            )
        else:
            values.update(
                pickup_date=schedule.pickup_date,
                pickup_time_slot=str(schedule.pickup_time_range),
            )
        return values

    def _map_owner(self, row: Mapping[str, Any]) -> BookingOwner:
        if row["user_id"]:
            return RegisteredOwner(
                user_id=row["user_id"],
                pickup_address_id=row["pickup_address_id"],
                delivery_address_id=row["delivery_address_id"],
            )
        return GuestOwner(
            contact=GuestContact(**row["guest_contact"]),
            pickup_address=GuestAddress(**row["guest_pickup_address"]),
            delivery_address=GuestAddress(**row["guest_delivery_address"]),
        )

    def _map_schedule(self, row: Mapping[str, Any]) -> SchedulingMode:
        if row["pickup_slot_id"]:
            return SlotSchedule(
                pickup_slot_id=row["pickup_slot_id"],
                delivery_slot_id=row["delivery_slot_id"],
            )
        return LegacySchedule(
            pickup_date=row["pickup_date"],
            pickup_time_range=TimeRange.parse(row["pickup_time_slot"]),
        )

    def _map_booking(
        self, row: Mapping[str, Any], item_rows: list[Mapping[str, Any]]
    ) -> Booking:
        return Booking(
            id=row["id"],
            booking_number=row["booking_number"],
            owner=self._map_owner(row),
            schedule=self._map_schedule(row),
            items=[
                BookingItem(
                    service_id=item["service_id"],
                    service_name=item["service_name"],
                    quantity=item["quantity"],
                    unit_price_cents=item["unit_price_cents"],
                )
                for item in item_rows
            ],
            service_class=ServiceClass(row["service_type"]),
            status=BookingStatus(row["status"]),
            payment_status=BookingPaymentStatus(row["payment_status"]),
            currency=row["currency"],
            special_instructions=row["special_instructions"],
            subscription_id=row["subscription_id"],
            used_subscription_credit=bool(row["used_subscription_credit"]),
            credit_discount_cents=row["credit_discount_cents"],
            booking_weight_kg=row["booking_weight_kg"],
            stripe_checkout_session_id=row["stripe_checkout_session_id"],
            stripe_payment_intent_id=row["stripe_payment_intent_id"],
            created_at=as_utc(row["created_at"]),
            updated_at=as_utc(row["updated_at"]),
            paid_at=as_utc(row["paid_at"]),
            cancelled_at=as_utc(row["cancelled_at"]),
            cancellation_reason=row["cancellation_reason"],
            cancelled_by=row["cancelled_by"],
            version=row["version"],
        )
