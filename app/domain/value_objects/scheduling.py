"""Scheduling value objects.

A booking is scheduled either against a pair of logistic slots or, for the
older booking form, against a pickup date plus a free-text time range. The
two modes are modelled as separate types so a booking can never carry both.
"""

import re
from dataclasses import dataclass
from datetime import date, time

_TIME_RANGE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)-([01]\d|2[0-3]):([0-5]\d)$")
_CLOCK_TIME = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def parse_clock_time(value: str | None) -> time | None:
    """Parse 'HH:MM' or 'HH:MM:SS'. Returns None when the string is malformed."""
    if not value:
        return None
    match = _CLOCK_TIME.match(value.strip())
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))


@dataclass(frozen=True)
class TimeRange:
    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"time range start must be before end: {self}")

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

    @classmethod
    def parse(cls, value: str) -> "TimeRange":
        match = _TIME_RANGE.match(value.strip())
        if not match:
            raise ValueError(f"time range must match HH:MM-HH:MM: {value!r}")
        sh, sm, eh, em = (int(part) for part in match.groups())
        return cls(start=time(sh, sm), end=time(eh, em))


@dataclass(frozen=True)
class SlotSchedule:
    pickup_slot_id: str
    delivery_slot_id: str


@dataclass(frozen=True)
class LegacySchedule:
    pickup_date: date
    pickup_time_range: TimeRange


SchedulingMode = SlotSchedule | LegacySchedule
