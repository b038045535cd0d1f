"""Actor records — pure dataclasses, no SQLAlchemy dependency.

The three actor kinds are resolved once at the API boundary into one of
these types; the lifecycle engine only ever sees typed records.
"""

from dataclasses import dataclass
from datetime import datetime

from src.ec_common.enums import ActorKind


@dataclass
class FamilyMember:
    id: str
    name: str | None
    phone: str | None
    created_at: datetime | None = None

    @property
    def kind(self) -> ActorKind:
        return ActorKind.FAMILY


@dataclass
class Elderly:
    id: str
    name: str | None
    phone: str | None
    user_id: str  # owning family member
    address: str | None = None
    lat: float | None = None
    lng: float | None = None
    created_at: datetime | None = None

    @property
    def kind(self) -> ActorKind:
        return ActorKind.ELDERLY


@dataclass
class Angel:
    id: str
    name: str | None
    phone: str | None
    balance: int = 0                # cents, cached; income_records is the source of truth
    completed_orders: int = 0
    rating: float | None = None     # mean of all rated orders, recomputed on every rating
    is_verified: bool = False
    is_online: bool = False
    created_at: datetime | None = None

    @property
    def kind(self) -> ActorKind:
        return ActorKind.ANGEL


Actor = FamilyMember | Elderly | Angel
