"""Payment gateway adapter.

Two implementations behind one protocol:
  - HttpPaymentGateway (PRODUCTION): JSON over httpx to the provider.
  - SandboxPaymentGateway (SANDBOX): no network, returns mock handles.

Both verify inbound callbacks the same way: HMAC-SHA256 over
"{timestamp}\\n{nonce}\\n{body}\\n" keyed with PAYMENT_WEBHOOK_SECRET,
base64-encoded in the Wechatpay-Signature header.
"""

import base64
import hashlib
import hmac
import json
import logging
import secrets
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import httpx

from config.settings import settings
from src.ec_common.enums import PaymentMode
from src.ec_common.errors import InvalidSignatureError, PaymentGatewayError, ValidationFailedError
from src.ec_order.domain.models import Order
from src.ec_payment.domain.models import PaymentHandle, PaymentNotification

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "wechatpay-signature"
TIMESTAMP_HEADER = "wechatpay-timestamp"
NONCE_HEADER = "wechatpay-nonce"
CALLBACK_MAX_AGE_SECONDS = 300


class PaymentGatewayProtocol(Protocol):
    async def create_prepay(self, order: Order, description: str) -> PaymentHandle: ...

    def verify_callback(self, headers: Mapping[str, str], body: bytes) -> PaymentNotification: ...

    async def refund(self, order: Order, reason: str) -> str: ...


# ---------------------------------------------------------------------------
# Signing helpers
# ---------------------------------------------------------------------------


def _hmac_b64(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def sign_callback(secret: str, timestamp: str, nonce: str, body: bytes) -> str:
    """Signature the provider puts in the Wechatpay-Signature header."""
    return _hmac_b64(secret, f"{timestamp}\n{nonce}\n{body.decode()}\n")


def sign_pay_params(api_key: str, app_id: str, time_stamp: str, nonce_str: str, package: str) -> str:
    return _hmac_b64(api_key, f"{app_id}\n{time_stamp}\n{nonce_str}\n{package}\n")


def verify_callback_signature(
    secret: str,
    headers: Mapping[str, str],
    body: bytes,
    now: float,
) -> PaymentNotification:
    """Authenticate a callback, then decode it. Raises InvalidSignatureError."""
    if not secret:
        raise InvalidSignatureError("Callback secret is not configured")
    lowered = {k.lower(): v for k, v in headers.items()}
    timestamp = lowered.get(TIMESTAMP_HEADER)
    nonce = lowered.get(NONCE_HEADER)
    signature = lowered.get(SIGNATURE_HEADER)
    if not (timestamp and nonce and signature):
        raise InvalidSignatureError("Missing callback signature headers")
    try:
        ts = int(timestamp)
    except ValueError:
        raise InvalidSignatureError("Malformed callback timestamp") from None
    if abs(now - ts) > CALLBACK_MAX_AGE_SECONDS:
        raise InvalidSignatureError("Callback timestamp outside the allowed window")

    expected = sign_callback(secret, timestamp, nonce, body)
    if not hmac.compare_digest(expected, signature):
        raise InvalidSignatureError()
    return parse_notification(body)


def parse_notification(body: bytes) -> PaymentNotification:
    try:
        data = json.loads(body)
        return PaymentNotification(
            out_trade_no=str(data["out_trade_no"]),
            transaction_id=str(data.get("transaction_id", "")),
            trade_state=str(data["trade_state"]),
            amount_total=int(data["amount"]["total"]),
        )
    except (ValueError, KeyError, TypeError):
        raise ValidationFailedError("Malformed payment callback payload") from None


def _nonce() -> str:
    return secrets.token_hex(16)


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------


class HttpPaymentGateway:
    """Production adapter. No order state is touched here."""

    _PREPAY_PATH = "/v3/pay/transactions/jsapi"
    _REFUND_PATH = "/v3/refund/domestic/refunds"

    def __init__(
        self,
        base_url: str,
        app_id: str,
        merchant_id: str,
        api_key: str,
        webhook_secret: str,
        notify_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._base_url = base_url
        self._app_id = app_id
        self._merchant_id = merchant_id
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._notify_url = notify_url
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    @classmethod
    def from_settings(cls) -> "HttpPaymentGateway":
        return cls(
            base_url=settings.PAYMENT_GATEWAY_BASE_URL,
            app_id=settings.PAYMENT_GATEWAY_APP_ID,
            merchant_id=settings.PAYMENT_GATEWAY_MERCHANT_ID,
            api_key=settings.PAYMENT_GATEWAY_API_KEY,
            webhook_secret=settings.PAYMENT_WEBHOOK_SECRET,
            notify_url=settings.PAYMENT_NOTIFY_URL,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self._api_key}"},
            ) as client:
                resp = await client.post(path, json=payload)
                resp.raise_for_status()
                data: dict[str, Any] = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Gateway %s returned %d", path, e.response.status_code)
            raise PaymentGatewayError(f"provider returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("Gateway %s unreachable: %s", path, e)
            raise PaymentGatewayError(type(e).__name__) from e
        except ValueError as e:
            raise PaymentGatewayError("provider returned a non-JSON body") from e
        return data

    async def create_prepay(self, order: Order, description: str) -> PaymentHandle:
        data = await self._post(
            self._PREPAY_PATH,
            {
                "appid": self._app_id,
                "mchid": self._merchant_id,
                "description": description,
                "out_trade_no": order.order_no,
                "notify_url": self._notify_url,
                "amount": {"total": order.price, "currency": "CNY"},
            },
        )
        prepay_id = data.get("prepay_id")
        if not prepay_id:
            raise PaymentGatewayError("provider response has no prepay_id")

        time_stamp = str(int(self._clock()))
        nonce_str = _nonce()
        package = f"prepay_id={prepay_id}"
        return PaymentHandle(
            app_id=self._app_id,
            time_stamp=time_stamp,
            nonce_str=nonce_str,
            package=package,
            sign_type="HMAC-SHA256",
            pay_sign=sign_pay_params(self._api_key, self._app_id, time_stamp, nonce_str, package),
        )

    def verify_callback(self, headers: Mapping[str, str], body: bytes) -> PaymentNotification:
        return verify_callback_signature(self._webhook_secret, headers, body, self._clock())

    async def refund(self, order: Order, reason: str) -> str:
        # out_refund_no is derived from the order, so a retried refund is deduplicated upstream
        data = await self._post(
            self._REFUND_PATH,
            {
                "out_trade_no": order.order_no,
                "out_refund_no": f"R{order.order_no}",
                "reason": reason,
                "amount": {"refund": order.price, "total": order.price, "currency": "CNY"},
            },
        )
        refund_id = data.get("refund_id")
        if not refund_id:
            raise PaymentGatewayError("provider response has no refund_id")
        return str(refund_id)


class SandboxPaymentGateway:
    """Sandbox adapter: never leaves the process."""

    def __init__(
        self,
        webhook_secret: str = "",
        app_id: str = "mock_appid",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._webhook_secret = webhook_secret
        self._app_id = app_id
        self._clock = clock

    async def create_prepay(self, order: Order, description: str) -> PaymentHandle:
        return PaymentHandle(
            app_id=self._app_id,
            time_stamp=str(int(self._clock())),
            nonce_str=_nonce(),
            package=f"prepay_id=mock_{order.order_no}",
            sign_type="HMAC-SHA256",
            pay_sign="mock_sign",
        )

    def verify_callback(self, headers: Mapping[str, str], body: bytes) -> PaymentNotification:
        return verify_callback_signature(self._webhook_secret, headers, body, self._clock())

    async def refund(self, order: Order, reason: str) -> str:
        logger.info("Sandbox refund for order %s: %s", order.order_no, reason)
        return f"mock_refund_{order.order_no}"


def build_payment_gateway(mode: PaymentMode) -> PaymentGatewayProtocol:
    if mode == PaymentMode.SANDBOX:
        return SandboxPaymentGateway(webhook_secret=settings.PAYMENT_WEBHOOK_SECRET)
    return HttpPaymentGateway.from_settings()
