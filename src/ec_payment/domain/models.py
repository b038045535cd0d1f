"""Domain models for ec_payment — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class IncomeRecord:
    id: int                          # BIGSERIAL
    angel_id: str
    entry_type: str                  # IncomeEntryType value
    amount: int                      # cents, positive=earning negative=withdrawal
    balance_after: int               # cents, angels.balance snapshot after op
    description: str | None = None
    order_id: str | None = None      # set for ORDER_INCOME, unique per order
    created_at: datetime | None = None


@dataclass(frozen=True)
class PaymentHandle:
    """Client-presentable parameters for the mini-program payment sheet."""
    app_id: str
    time_stamp: str
    nonce_str: str
    package: str
    sign_type: str
    pay_sign: str


@dataclass(frozen=True)
class PaymentNotification:
    """Verified, decoded body of an inbound payment callback."""
    out_trade_no: str                # our order_no
    transaction_id: str
    trade_state: str                 # "SUCCESS" on a completed payment
    amount_total: int                # cents

    @property
    def succeeded(self) -> bool:
        return self.trade_state == "SUCCESS"


@dataclass(frozen=True)
class BalanceMismatch:
    angel_id: str
    cached_balance: int
    ledger_balance: int

    @property
    def difference(self) -> int:
        return self.cached_balance - self.ledger_balance
