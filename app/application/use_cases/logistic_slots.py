import logging
from datetime import date

from app.api.schemas.slots import (
    CreateSlotRequest,
    DeliveryOptionsResponse,
    SlotListResponse,
    SlotResponse,
)
from app.application.interfaces.clock import Clock
from app.application.interfaces.slot_repo import SlotRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.domain.entities.booking import ServiceClass
from app.domain.entities.logistic_slot import LogisticSlot, SlotRole
from app.domain.errors import SlotNotFoundError, ValidationError
from app.domain.services.slot_scheduler import compute_delivery_window
from app.domain.value_objects.scheduling import parse_clock_time


class ListLogisticSlotsUseCase:
    def __init__(self, slot_repo: SlotRepo, clock: Clock) -> None:
        self._slot_repo = slot_repo
        self._clock = clock

    async def execute(
        self,
        role: SlotRole,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> SlotListResponse:
        today = self._clock.today()
        start = max(start_date or today, today)
        if end_date is not None and end_date < start:
            raise ValidationError("end_date", "must not be before start_date")
        slots = await self._slot_repo.list_open(role, start, end_date)
        return SlotListResponse(slots=[SlotResponse.from_entity(slot) for slot in slots])


class GetDeliveryOptionsUseCase:
    """Earliest delivery boundary for a pickup slot plus the delivery slots it admits."""

    def __init__(self, slot_repo: SlotRepo, clock: Clock) -> None:
        self._slot_repo = slot_repo
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        pickup_slot_id: str,
        service_class: ServiceClass = ServiceClass.STANDARD,
        end_date: date | None = None,
    ) -> DeliveryOptionsResponse:
        pickup_slot = await self._slot_repo.get(pickup_slot_id)
        if pickup_slot is None or pickup_slot.role != SlotRole.PICKUP:
            raise SlotNotFoundError(pickup_slot_id, field="pickup_slot_id")

        today = self._clock.today()
        window = compute_delivery_window(pickup_slot, service_class, today)
        candidates = await self._slot_repo.list_open(
            SlotRole.DELIVERY, max(window.earliest_date, today), end_date
        )
        slots = [slot for slot in candidates if window.admits(slot)]
        return DeliveryOptionsResponse(
            pickup_slot_id=pickup_slot.id,
            service_type=service_class,
            earliest_date=window.earliest_date,
            earliest_at=window.earliest_at,
            lead_time_hours=int(window.lead_time.total_seconds() // 3600),
            degraded=window.degraded,
            slots=[SlotResponse.from_entity(slot) for slot in slots],
        )


class CreateLogisticSlotUseCase:
    def __init__(
        self,
        slot_repo: SlotRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        uuid_generator: UUIDGenerator,
    ) -> None:
        self._slot_repo = slot_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._uuid_generator = uuid_generator
        self._logger = logging.getLogger(__name__)

    async def execute(self, request: CreateSlotRequest) -> SlotResponse:
        if not request.is_open:
            raise ValidationError("is_open", "new slots must be open")
        if request.slot_date < self._clock.today():
            raise ValidationError("slot_date", "cannot create a slot in the past")
        start = parse_clock_time(request.start_time)
        end = parse_clock_time(request.end_time)
        if start is None or end is None or end <= start:
            raise ValidationError("end_time", "must be after start_time")

        slot = LogisticSlot(
            id=self._uuid_generator.generate_uuid(),
            role=request.role,
            slot_date=request.slot_date,
            start_time=request.start_time,
            end_time=request.end_time,
            is_open=True,
            created_at=self._clock.now(),
        )
        async with self._transaction_manager.start():
            await self._slot_repo.add(slot)
        self._logger.info(
            "Logistic slot created",
            extra={"slot_id": slot.id, "role": slot.role.value, "slot_date": str(slot.slot_date)},
        )
        return SlotResponse.from_entity(slot)
