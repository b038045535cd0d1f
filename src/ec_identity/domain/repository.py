"""IdentityRepository Protocol — lookups the lifecycle engine needs."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ec_identity.domain.models import Angel, Elderly, FamilyMember


class IdentityRepositoryProtocol(Protocol):
    async def get_family_member(
        self, db: AsyncSession, user_id: str
    ) -> FamilyMember | None: ...

    async def get_elderly(self, db: AsyncSession, elderly_id: str) -> Elderly | None: ...

    async def get_elderly_for_owner(
        self, db: AsyncSession, elderly_id: str, user_id: str
    ) -> Elderly | None: ...

    async def get_angel(self, db: AsyncSession, angel_id: str) -> Angel | None: ...

    async def recompute_angel_rating(
        self, db: AsyncSession, angel_id: str
    ) -> float | None: ...
