"""Pydantic schemas for the catalog API."""
from pydantic import BaseModel

from src.ec_catalog.domain.models import ServiceType
from src.ec_common.money import cents_to_display


class ServiceTypeItem(BaseModel):
    id: str
    name: str
    price_cents: int
    price_display: str
    unit: str
    category: str | None
    description: str | None

    @classmethod
    def from_domain(cls, st: ServiceType) -> "ServiceTypeItem":
        return cls(
            id=st.id,
            name=st.name,
            price_cents=st.price,
            price_display=cents_to_display(st.price),
            unit=st.unit,
            category=st.category,
            description=st.description,
        )


class ServiceTypeListResponse(BaseModel):
    items: list[ServiceTypeItem]
