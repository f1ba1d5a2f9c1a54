from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities.booking import ServiceClass
from app.domain.entities.logistic_slot import LogisticSlot, SlotRole


class SlotResponse(BaseModel):
    id: str
    role: SlotRole
    slot_date: date
    start_time: str
    end_time: str
    is_open: bool
    label: str

    @classmethod
    def from_entity(cls, slot: LogisticSlot) -> "SlotResponse":
        return cls(
            id=slot.id,
            role=slot.role,
            slot_date=slot.slot_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_open=slot.is_open,
            label=slot.label,
        )


class SlotListResponse(BaseModel):
    slots: list[SlotResponse]


class DeliveryOptionsResponse(BaseModel):
    pickup_slot_id: str
    service_type: ServiceClass
    earliest_date: date
    earliest_at: datetime | None = None
    lead_time_hours: int
    degraded: bool
    slots: list[SlotResponse]


class CreateSlotRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    role: SlotRole
    slot_date: date = Field(alias="slotDate")
    start_time: str = Field(alias="startTime", pattern=r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")
    end_time: str = Field(alias="endTime", pattern=r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")
    is_open: bool = Field(default=True, alias="isOpen")
