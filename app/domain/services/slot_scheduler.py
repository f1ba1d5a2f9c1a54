"""Delivery lead-time rules for slot based bookings."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from app.domain.constants import EXPRESS_DELIVERY_LEAD_TIME, STANDARD_DELIVERY_LEAD_TIME
from app.domain.entities.booking import ServiceClass
from app.domain.entities.logistic_slot import LogisticSlot, SlotRole
from app.domain.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryWindow:
    """
    Earliest acceptable delivery boundary for a pickup slot.

    ``degraded`` is set when the pickup end time could not be parsed and the
    boundary fell back to today.
    """

    earliest_date: date
    earliest_at: datetime | None
    lead_time: timedelta
    degraded: bool = False

    def admits(self, slot: LogisticSlot) -> bool:
        if slot.slot_date < self.earliest_date:
            return False
        if self.earliest_at is None:
            return True
        start_at = slot.start_at
        return start_at is not None and start_at >= self.earliest_at


def lead_time_for(service_class: ServiceClass) -> timedelta:
    if service_class == ServiceClass.EXPRESS:
        return EXPRESS_DELIVERY_LEAD_TIME
    return STANDARD_DELIVERY_LEAD_TIME


def resolve_service_class(
    requested: ServiceClass | None, item_classes: Iterable[ServiceClass]
) -> ServiceClass:
    """Express if asked for explicitly or if any booked service is express."""
    if requested == ServiceClass.EXPRESS:
        return ServiceClass.EXPRESS
    if any(item_class == ServiceClass.EXPRESS for item_class in item_classes):
        return ServiceClass.EXPRESS
    return requested or ServiceClass.STANDARD


def compute_delivery_window(
    pickup_slot: LogisticSlot, service_class: ServiceClass, today: date
) -> DeliveryWindow:
    """Lead time is measured from the end of the pickup slot, not its start."""
    lead_time = lead_time_for(service_class)
    pickup_end = pickup_slot.end_at
    if pickup_end is None:
        logger.warning(
            "Unparseable pickup slot end time, delivery boundary falls back to today",
            extra={"slot_id": pickup_slot.id, "end_time": pickup_slot.end_time},
        )
        return DeliveryWindow(
            earliest_date=today, earliest_at=None, lead_time=lead_time, degraded=True
        )

    earliest_at = pickup_end + lead_time
    return DeliveryWindow(
        earliest_date=earliest_at.date(), earliest_at=earliest_at, lead_time=lead_time
    )


def validate_slot_pair(
    pickup_slot: LogisticSlot,
    delivery_slot: LogisticSlot,
    service_class: ServiceClass,
    today: date,
) -> None:
    """
    Check a concrete pickup/delivery pair before it is persisted.

    Unlike compute_delivery_window this fails closed: a slot whose times
    cannot be parsed is rejected instead of relaxing the lead time.
    """
    _check_slot(pickup_slot, SlotRole.PICKUP, "pickup_slot_id", today)
    _check_slot(delivery_slot, SlotRole.DELIVERY, "delivery_slot_id", today)

    pickup_end = pickup_slot.end_at
    if pickup_end is None:
        raise ValidationError("pickup_slot_id", "pickup slot has an unreadable end time")
    delivery_start = delivery_slot.start_at
    if delivery_start is None:
        raise ValidationError("delivery_slot_id", "delivery slot has an unreadable start time")

    if delivery_start <= pickup_end:
        raise ValidationError("delivery_slot_id", "delivery must start after the pickup ends")

    lead_time = lead_time_for(service_class)
    if delivery_start < pickup_end + lead_time:
        hours = int(lead_time.total_seconds() // 3600)
        raise ValidationError(
            "delivery_slot_id",
            f"{service_class.value} service needs at least {hours}h between pickup and delivery",
        )


def _check_slot(slot: LogisticSlot, role: SlotRole, field: str, today: date) -> None:
    if slot.role != role:
        raise ValidationError(field, f"slot {slot.id} is not a {role.value} slot")
    if not slot.is_open:
        raise ValidationError(field, f"slot {slot.id} is closed")
    if slot.slot_date < today:
        raise ValidationError(field, f"slot {slot.id} is in the past")
