"""LogisticSlot entity - a bookable pickup or delivery window."""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum

from app.domain.value_objects.scheduling import parse_clock_time


class SlotRole(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


@dataclass(frozen=True)
class LogisticSlot:
    """
    A date plus a half-open [start, end) time window for one role.

    Times are kept as the strings stored in the database ('HH:MM' or
    'HH:MM:SS'); the parsed accessors return None for malformed values.
    """

    id: str
    role: SlotRole
    slot_date: date
    start_time: str
    end_time: str
    is_open: bool = True
    created_at: datetime | None = None

    @property
    def starts(self) -> time | None:
        return parse_clock_time(self.start_time)

    @property
    def ends(self) -> time | None:
        return parse_clock_time(self.end_time)

    @property
    def start_at(self) -> datetime | None:
        start = self.starts
        return datetime.combine(self.slot_date, start) if start else None

    @property
    def end_at(self) -> datetime | None:
        end = self.ends
        return datetime.combine(self.slot_date, end) if end else None

    @property
    def label(self) -> str:
        return f"{self.start_time[:5]}-{self.end_time[:5]}"
