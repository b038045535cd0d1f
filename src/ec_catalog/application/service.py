"""CatalogApplicationService — read-only, no commit/rollback needed."""
from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_catalog.application.schemas import ServiceTypeItem, ServiceTypeListResponse
from src.ec_catalog.domain.repository import CatalogRepositoryProtocol
from src.ec_catalog.infrastructure.persistence import CatalogRepository


class CatalogApplicationService:
    def __init__(self, repo: CatalogRepositoryProtocol | None = None) -> None:
        self._repo: CatalogRepositoryProtocol = repo or CatalogRepository()

    async def list_service_types(self, db: AsyncSession) -> ServiceTypeListResponse:
        service_types = await self._repo.list_active(db)
        return ServiceTypeListResponse(
            items=[ServiceTypeItem.from_domain(st) for st in service_types]
        )
