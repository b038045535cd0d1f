"""Service catalog entry — pure dataclass."""
from dataclasses import dataclass


@dataclass
class ServiceType:
    id: str
    name: str
    price: int  # cents; copied onto each order at creation
    unit: str = "次"
    category: str | None = None
    description: str | None = None
    sort_order: int = 0
    is_active: bool = True
