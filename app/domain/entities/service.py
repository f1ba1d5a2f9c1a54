"""ServiceOffering - a catalog entry that can be booked as a line item."""

from dataclasses import dataclass
from decimal import Decimal

from app.domain.entities.booking import ServiceClass


@dataclass(frozen=True)
class ServiceOffering:
    id: str
    name: str
    base_price: Decimal
    service_class: ServiceClass = ServiceClass.STANDARD
    is_active: bool = True
