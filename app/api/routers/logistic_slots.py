from datetime import date

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import get_use_cases
from app.api.schemas.slots import (
    CreateSlotRequest,
    DeliveryOptionsResponse,
    SlotListResponse,
    SlotResponse,
)
from app.domain.entities.booking import ServiceClass
from app.domain.entities.logistic_slot import SlotRole

router = APIRouter()


@router.get("/logistic-slots", response_model=SlotListResponse)
async def list_logistic_slots(
    role: SlotRole = Query(...),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    use_cases=Depends(get_use_cases),
) -> SlotListResponse:
    return await use_cases["list_slots"].execute(
        role=role, start_date=start_date, end_date=end_date
    )


@router.get("/logistic-slots/delivery-options", response_model=DeliveryOptionsResponse)
async def get_delivery_options(
    pickup_slot_id: str = Query(..., alias="pickupSlotId"),
    service_type: ServiceClass = Query(default=ServiceClass.STANDARD, alias="serviceType"),
    end_date: date | None = Query(default=None, alias="endDate"),
    use_cases=Depends(get_use_cases),
) -> DeliveryOptionsResponse:
    return await use_cases["delivery_options"].execute(
        pickup_slot_id=pickup_slot_id, service_class=service_type, end_date=end_date
    )


@router.post(
    "/logistic-slots",
    response_model=SlotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_logistic_slot(
    payload: CreateSlotRequest,
    use_cases=Depends(get_use_cases),
) -> SlotResponse:
    return await use_cases["create_slot"].execute(request=payload)
