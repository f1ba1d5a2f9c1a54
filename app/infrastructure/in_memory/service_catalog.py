from typing import Sequence

from app.application.interfaces.service_catalog import ServiceCatalog
from app.domain.entities.service import ServiceOffering


class InMemoryServiceCatalog(ServiceCatalog):
    def __init__(self, offerings: Sequence[ServiceOffering] = ()) -> None:
        self.offerings: dict[str, ServiceOffering] = {offering.id: offering for offering in offerings}

    def add(self, offering: ServiceOffering) -> None:
        self.offerings[offering.id] = offering

    async def get_many(self, service_ids: Sequence[str]) -> dict[str, ServiceOffering]:
        return {
            service_id: self.offerings[service_id]
            for service_id in service_ids
            if service_id in self.offerings and self.offerings[service_id].is_active
        }
