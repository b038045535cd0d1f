"""Pydantic schemas and cursor utilities for the payment API."""

import base64
import json

from pydantic import BaseModel, Field

from src.ec_common.enums import WithdrawMethod
from src.ec_common.money import cents_to_display
from src.ec_payment.domain.models import IncomeRecord, PaymentHandle

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreatePaymentRequest(BaseModel):
    order_id: str = Field(..., min_length=1)


class RefundRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=200)


class WithdrawRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount to withdraw in cents")
    method: WithdrawMethod
    bank_card_id: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentHandleResponse(BaseModel):
    app_id: str
    time_stamp: str
    nonce_str: str
    package: str
    sign_type: str
    pay_sign: str

    @classmethod
    def from_domain(cls, handle: PaymentHandle) -> "PaymentHandleResponse":
        return cls(
            app_id=handle.app_id,
            time_stamp=handle.time_stamp,
            nonce_str=handle.nonce_str,
            package=handle.package,
            sign_type=handle.sign_type,
            pay_sign=handle.pay_sign,
        )


class CreatePaymentResponse(BaseModel):
    order_id: str
    order_no: str
    status: str
    is_paid: bool
    payment: PaymentHandleResponse
    message: str


class RefundResponse(BaseModel):
    order_id: str
    status: str
    refund_id: str
    message: str


class WithdrawResponse(BaseModel):
    balance_cents: int
    balance_display: str
    withdrawn_cents: int
    withdrawn_display: str
    method: str
    income_record_id: int

    @classmethod
    def from_record(cls, record: IncomeRecord, method: str) -> "WithdrawResponse":
        return cls(
            balance_cents=record.balance_after,
            balance_display=cents_to_display(record.balance_after),
            withdrawn_cents=-record.amount,
            withdrawn_display=cents_to_display(-record.amount),
            method=method,
            income_record_id=record.id,
        )


class IncomeRecordItem(BaseModel):
    id: int
    entry_type: str
    amount_cents: int
    amount_display: str
    balance_after_cents: int
    description: str | None
    order_id: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_domain(cls, r: IncomeRecord) -> "IncomeRecordItem":
        return cls(
            id=r.id,
            entry_type=r.entry_type,
            amount_cents=r.amount,
            amount_display=cents_to_display(r.amount),
            balance_after_cents=r.balance_after,
            description=r.description,
            order_id=r.order_id,
            created_at=r.created_at.isoformat() if r.created_at else "",
        )


class IncomeListResponse(BaseModel):
    balance_cents: int
    balance_display: str
    items: list[IncomeRecordItem]
    next_cursor: str | None
    has_more: bool
