"""Request/response schema validation."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.ec_common.enums import WithdrawMethod
from src.ec_order.application.schemas import (
    CompleteServiceRequest,
    CreateOrderRequest,
    OrderResponse,
    RateOrderRequest,
)
from src.ec_order.domain.models import Order
from src.ec_payment.application.schemas import WithdrawRequest, cursor_decode, cursor_encode

_CREATE = {
    "service_type_id": "ST-ESCORT-MEDICAL",
    "elderly_id": "e-1",
    "address": "1 Hospital Rd",
    "service_time": "2026-10-18T09:00:00Z",
}


class TestCreateOrderRequest:
    def test_minimal(self) -> None:
        req = CreateOrderRequest(**_CREATE)
        assert req.is_asap is False
        assert req.lat is None

    def test_price_is_not_accepted_from_client(self) -> None:
        req = CreateOrderRequest(**_CREATE, price=1)  # type: ignore[call-arg]
        assert not hasattr(req, "price")

    def test_lat_without_lng(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(**_CREATE, lat=31.2)

    def test_lat_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(**_CREATE, lat=91, lng=0)

    def test_empty_address(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(**{**_CREATE, "address": ""})


class TestOtherRequests:
    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_bounds(self, rating: int) -> None:
        with pytest.raises(ValidationError):
            RateOrderRequest(rating=rating)

    def test_too_many_images(self) -> None:
        with pytest.raises(ValidationError):
            CompleteServiceRequest(images=[f"{i}.jpg" for i in range(10)])

    def test_withdraw_positive(self) -> None:
        with pytest.raises(ValidationError):
            WithdrawRequest(amount_cents=0, method=WithdrawMethod.WECHAT)

    def test_withdraw_method_enum(self) -> None:
        with pytest.raises(ValidationError):
            WithdrawRequest(amount_cents=1000, method="cash")  # type: ignore[arg-type]


class TestOrderResponse:
    def test_from_domain(self) -> None:
        order = Order(
            id="o-1",
            order_no="20261017000001",
            user_id="u-1",
            elderly_id="e-1",
            service_type_id="ST-ESCORT-MEDICAL",
            price=8000,
            service_time=datetime(2026, 10, 18, tzinfo=UTC),
            address="addr",
            completion_images=["a.jpg"],
        )
        resp = OrderResponse.from_domain(order)
        assert resp.price_cents == 8000
        assert resp.price_display == "¥80.00"
        assert resp.completion_images == ["a.jpg"]
        dumped = resp.model_dump(mode="json")
        assert dumped["service_time"].startswith("2026-10-18")


def test_cursor_round_trip() -> None:
    assert cursor_decode(cursor_encode(42)) == 42
    assert cursor_decode(None) is None
