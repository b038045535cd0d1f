"""Order domain model — pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass, field
from datetime import datetime

from src.ec_common.enums import TERMINAL_STATUSES, OrderStatus


@dataclass
class Order:
    id: str
    order_no: str  # date-prefixed, human-readable, unique
    user_id: str  # owning family member, immutable
    elderly_id: str  # immutable
    service_type_id: str  # immutable
    price: int  # cents, captured from the catalog at creation, never updated
    service_time: datetime
    address: str
    status: str = OrderStatus.PENDING.value
    angel_id: str | None = None  # null until the first successful claim
    lat: float | None = None
    lng: float | None = None
    remark: str | None = None
    is_asap: bool = False
    # Payment
    is_paid: bool = False
    payment_method: str | None = None
    # Feedback
    rating: int | None = None  # 1-5, set at most once
    comment: str | None = None
    cancel_reason: str | None = None
    completion_remark: str | None = None
    completion_images: list[str] = field(default_factory=list)
    # Each stamped once by the transition that reaches it
    created_at: datetime | None = None
    accepted_at: datetime | None = None
    departed_at: datetime | None = None
    arrived_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    rated_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}

    @property
    def is_rated(self) -> bool:
        return self.rating is not None

    def is_visible_to(self, actor_id: str) -> bool:
        return actor_id in (self.user_id, self.angel_id, self.elderly_id)
