"""Value Object BookingNumber - human readable sequential booking reference."""

import re
from dataclasses import dataclass
from datetime import date

from app.domain.constants import BOOKING_NUMBER_PREFIX

_PATTERN = re.compile(rf"^{BOOKING_NUMBER_PREFIX}-\d{{8}}-\d{{6,}}$")


@dataclass(frozen=True)
class BookingNumber:
    """
    Format: BK-YYYYMMDD-NNNNNN (e.g. BK-20261020-000042).

    The numeric suffix comes from a monotonically increasing sequence, the
    date part is the creation day.
    """

    value: str

    def __post_init__(self) -> None:
        if not _PATTERN.match(self.value):
            raise ValueError(f"Invalid booking number: {self.value}")

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_sequence(cls, created_on: date, sequence: int) -> "BookingNumber":
        if sequence < 1:
            raise ValueError(f"sequence must be positive: {sequence}")
        return cls(value=f"{BOOKING_NUMBER_PREFIX}-{created_on:%Y%m%d}-{sequence:06d}")
