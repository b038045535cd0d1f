"""CatalogRepository Protocol."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_catalog.domain.models import ServiceType


class CatalogRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, service_type_id: str) -> ServiceType | None: ...

    async def list_active(self, db: AsyncSession) -> list[ServiceType]: ...
