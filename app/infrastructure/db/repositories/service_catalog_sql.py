from decimal import Decimal
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.service_catalog import ServiceCatalog
from app.domain.entities.booking import ServiceClass
from app.domain.entities.service import ServiceOffering
from app.infrastructure.db.tables import services


class ServiceCatalogSQL(ServiceCatalog):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_many(self, service_ids: Sequence[str]) -> dict[str, ServiceOffering]:
        if not service_ids:
            return {}
        result = await self._session.execute(
            select(services).where(
                services.c.id.in_(list(service_ids)), services.c.is_active.is_(True)
            )
        )
        return {
            row["id"]: ServiceOffering(
                id=row["id"],
                name=row["name"],
                base_price=Decimal(str(row["base_price"])),
                service_class=ServiceClass(row["service_type"]),
                is_active=bool(row["is_active"]),
            )
            for row in result.mappings().all()
        }
