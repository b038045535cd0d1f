"""Payment gateway adapter: callback authentication and HTTP error mapping."""

import json
from datetime import UTC, datetime

import httpx
import pytest

from src.ec_common.enums import PaymentMode
from src.ec_common.errors import InvalidSignatureError, PaymentGatewayError, ValidationFailedError
from src.ec_order.domain.models import Order
from src.ec_payment.infrastructure.gateway import (
    HttpPaymentGateway,
    SandboxPaymentGateway,
    build_payment_gateway,
    sign_callback,
    verify_callback_signature,
)

SECRET = "webhook-secret"
NOW = 1_790_000_000


def _order() -> Order:
    return Order(
        id="o-1",
        order_no="20261017000001",
        user_id="u-1",
        elderly_id="e-1",
        service_type_id="ST-ESCORT-MEDICAL",
        price=8000,
        service_time=datetime.now(UTC),
        address="addr",
    )


def _body(**overrides: object) -> bytes:
    data: dict[str, object] = {
        "out_trade_no": "20261017000001",
        "transaction_id": "wx-1",
        "trade_state": "SUCCESS",
        "amount": {"total": 8000},
    }
    data.update(overrides)
    return json.dumps(data).encode()


def _headers(body: bytes, ts: int = NOW, nonce: str = "n1", secret: str = SECRET) -> dict[str, str]:
    return {
        "Wechatpay-Timestamp": str(ts),
        "Wechatpay-Nonce": nonce,
        "Wechatpay-Signature": sign_callback(secret, str(ts), nonce, body),
    }


class TestCallbackVerification:
    def test_valid_callback(self) -> None:
        body = _body()
        n = verify_callback_signature(SECRET, _headers(body), body, NOW + 10)
        assert n.out_trade_no == "20261017000001"
        assert n.amount_total == 8000
        assert n.succeeded

    def test_headers_are_case_insensitive(self) -> None:
        body = _body()
        headers = {k.upper(): v for k, v in _headers(body).items()}
        verify_callback_signature(SECRET, headers, body, NOW)

    def test_wrong_secret(self) -> None:
        body = _body()
        with pytest.raises(InvalidSignatureError):
            verify_callback_signature(SECRET, _headers(body, secret="other"), body, NOW)

    def test_tampered_body(self) -> None:
        body = _body()
        headers = _headers(body)
        with pytest.raises(InvalidSignatureError):
            verify_callback_signature(SECRET, headers, _body(amount={"total": 1}), NOW)

    def test_stale_timestamp(self) -> None:
        body = _body()
        with pytest.raises(InvalidSignatureError):
            verify_callback_signature(SECRET, _headers(body), body, NOW + 301)

    def test_missing_headers(self) -> None:
        with pytest.raises(InvalidSignatureError):
            verify_callback_signature(SECRET, {}, _body(), NOW)

    def test_unconfigured_secret_rejects_everything(self) -> None:
        body = _body()
        with pytest.raises(InvalidSignatureError):
            verify_callback_signature("", _headers(body), body, NOW)

    def test_malformed_payload_after_valid_signature(self) -> None:
        body = b'{"out_trade_no": "x"}'
        with pytest.raises(ValidationFailedError):
            verify_callback_signature(SECRET, _headers(body), body, NOW)

    def test_non_success_trade_state(self) -> None:
        body = _body(trade_state="CLOSED")
        assert not verify_callback_signature(SECRET, _headers(body), body, NOW).succeeded


def _http_gateway(transport: httpx.MockTransport) -> HttpPaymentGateway:
    return HttpPaymentGateway(
        base_url="https://pay.test",
        app_id="wx-app",
        merchant_id="mch-1",
        api_key="api-key",
        webhook_secret=SECRET,
        notify_url="https://api.test/api/v1/payment/notify",
        transport=transport,
        clock=lambda: NOW,
    )


class TestHttpPaymentGateway:
    async def test_prepay_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"prepay_id": "wx123"})

        handle = await _http_gateway(httpx.MockTransport(handler)).create_prepay(_order(), "Eldercare")

        assert handle.package == "prepay_id=wx123"
        assert handle.time_stamp == str(NOW)
        assert handle.app_id == "wx-app"
        payload = json.loads(seen[0].content)
        assert payload["amount"]["total"] == 8000
        assert payload["out_trade_no"] == "20261017000001"
        assert seen[0].url.path == "/v3/pay/transactions/jsapi"

    async def test_server_error_maps_to_gateway_error(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(PaymentGatewayError):
            await _http_gateway(transport).create_prepay(_order(), "Eldercare")

    async def test_timeout_maps_to_gateway_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(PaymentGatewayError):
            await _http_gateway(httpx.MockTransport(handler)).refund(_order(), "sick")

    async def test_missing_prepay_id(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        with pytest.raises(PaymentGatewayError):
            await _http_gateway(transport).create_prepay(_order(), "Eldercare")

    async def test_non_json_body(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(PaymentGatewayError):
            await _http_gateway(transport).create_prepay(_order(), "Eldercare")

    async def test_refund_uses_order_derived_refund_no(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"refund_id": "rf-1"})

        refund_id = await _http_gateway(httpx.MockTransport(handler)).refund(_order(), "sick")

        assert refund_id == "rf-1"
        assert json.loads(seen[0].content)["out_refund_no"] == "R20261017000001"

    def test_verify_callback_uses_clock(self) -> None:
        body = _body()
        gw = _http_gateway(httpx.MockTransport(lambda r: httpx.Response(200)))
        assert gw.verify_callback(_headers(body), body).succeeded


class TestSandboxPaymentGateway:
    async def test_mock_handle_and_refund(self) -> None:
        gw = SandboxPaymentGateway(webhook_secret=SECRET)
        handle = await gw.create_prepay(_order(), "Eldercare")
        assert handle.package == "prepay_id=mock_20261017000001"
        assert await gw.refund(_order(), "x") == "mock_refund_20261017000001"

    def test_still_verifies_signatures(self) -> None:
        gw = SandboxPaymentGateway(webhook_secret=SECRET)
        body = _body()
        with pytest.raises(InvalidSignatureError):
            gw.verify_callback(_headers(body, secret="wrong"), body)

    def test_builder(self) -> None:
        assert isinstance(build_payment_gateway(PaymentMode.SANDBOX), SandboxPaymentGateway)
        assert isinstance(build_payment_gateway(PaymentMode.PRODUCTION), HttpPaymentGateway)
