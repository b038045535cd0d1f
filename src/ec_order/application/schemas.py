# src/ec_order/application/schemas.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from src.ec_common.money import cents_to_display
from src.ec_order.domain.models import Order
from src.ec_timeline.domain.models import TimelineEntry


class CreateOrderRequest(BaseModel):
    service_type_id: str = Field(..., min_length=1)
    elderly_id: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, max_length=255)
    service_time: datetime
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    remark: str | None = Field(None, max_length=500)
    is_asap: bool = False

    @model_validator(mode="after")
    def coordinates_paired(self) -> "CreateOrderRequest":
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be given together")
        return self


class CancelOrderRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=200)


class CompleteServiceRequest(BaseModel):
    remark: str | None = Field(None, max_length=500)
    images: list[str] = Field(default_factory=list, max_length=9)


class RateOrderRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=500)


class OrderResponse(BaseModel):
    id: str
    order_no: str
    status: str
    user_id: str
    elderly_id: str
    service_type_id: str
    angel_id: str | None
    price_cents: int
    price_display: str
    service_time: datetime
    address: str
    lat: float | None
    lng: float | None
    remark: str | None
    is_asap: bool
    is_paid: bool
    payment_method: str | None
    rating: int | None
    comment: str | None
    cancel_reason: str | None
    completion_remark: str | None
    completion_images: list[str]
    created_at: datetime | None = None
    accepted_at: datetime | None = None
    departed_at: datetime | None = None
    arrived_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_no=order.order_no,
            status=order.status,
            user_id=order.user_id,
            elderly_id=order.elderly_id,
            service_type_id=order.service_type_id,
            angel_id=order.angel_id,
            price_cents=order.price,
            price_display=cents_to_display(order.price),
            service_time=order.service_time,
            address=order.address,
            lat=order.lat,
            lng=order.lng,
            remark=order.remark,
            is_asap=order.is_asap,
            is_paid=order.is_paid,
            payment_method=order.payment_method,
            rating=order.rating,
            comment=order.comment,
            cancel_reason=order.cancel_reason,
            completion_remark=order.completion_remark,
            completion_images=list(order.completion_images),
            created_at=order.created_at,
            accepted_at=order.accepted_at,
            departed_at=order.departed_at,
            arrived_at=order.arrived_at,
            started_at=order.started_at,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
            paid_at=order.paid_at,
            refunded_at=order.refunded_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool


class NearbyOrderItem(OrderResponse):
    distance_km: float


class NearbyOrderListResponse(BaseModel):
    radius_km: float
    items: list[NearbyOrderItem]


class TimelineEntryItem(BaseModel):
    id: int
    event: str
    content: str
    operator: str
    created_at: datetime | None

    @classmethod
    def from_domain(cls, entry: TimelineEntry) -> "TimelineEntryItem":
        return cls(
            id=entry.id,
            event=entry.event,
            content=entry.content,
            operator=entry.operator,
            created_at=entry.created_at,
        )


class TimelineResponse(BaseModel):
    order_id: str
    items: list[TimelineEntryItem]


class OrderDetailResponse(BaseModel):
    order: OrderResponse
    timeline: list[TimelineEntryItem]


class CancelOrderResponse(BaseModel):
    order: OrderResponse
    refund_status: Literal["NOT_REQUIRED", "REFUNDED", "PENDING"]
    refund_id: str | None = None
    message: str
