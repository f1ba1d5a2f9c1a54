from typing import Sequence

from app.domain.entities.service import ServiceOffering


class ServiceCatalog:
    async def get_many(self, service_ids: Sequence[str]) -> dict[str, ServiceOffering]:
        """Active services by id. Unknown or inactive ids are simply absent."""
        raise NotImplementedError
