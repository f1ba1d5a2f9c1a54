"""Value objects of the booking domain."""

from app.domain.value_objects.booking_number import BookingNumber
from app.domain.value_objects.money import Money
from app.domain.value_objects.scheduling import (
    LegacySchedule,
    SchedulingMode,
    SlotSchedule,
    TimeRange,
    parse_clock_time,
)

__all__ = [
    "BookingNumber",
    "Money",
    "LegacySchedule",
    "SchedulingMode",
    "SlotSchedule",
    "TimeRange",
    "parse_clock_time",
]
