"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"                  # awaiting payment (or pay-after-service)
    PAID = "PAID"                        # prepaid, waiting for an angel
    ACCEPTED = "ACCEPTED"
    ON_WAY = "ON_WAY"
    ARRIVED = "ARRIVED"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING_CONFIRM = "PENDING_CONFIRM"  # angel finished, family has not confirmed
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


TERMINAL_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)


class ActorKind(str, Enum):
    FAMILY = "family"
    ELDERLY = "elderly"
    ANGEL = "angel"


class OperatorRole(str, Enum):
    """Who a timeline entry is attributed to."""
    SYSTEM = "SYSTEM"
    FAMILY = "FAMILY"
    ANGEL = "ANGEL"


class TimelineEvent(str, Enum):
    CREATE = "CREATE"
    PAID = "PAID"
    ACCEPT = "ACCEPT"
    DEPART = "DEPART"
    ARRIVE = "ARRIVE"
    START = "START"
    COMPLETE_PENDING = "COMPLETE_PENDING"
    CONFIRMED = "CONFIRMED"
    CANCEL = "CANCEL"
    REFUND = "REFUND"
    RATE = "RATE"


class IncomeEntryType(str, Enum):
    ORDER_INCOME = "ORDER_INCOME"
    WITHDRAW = "WITHDRAW"


class WithdrawMethod(str, Enum):
    WECHAT = "wechat"
    ALIPAY = "alipay"
    BANK = "bank"


class PaymentMode(str, Enum):
    SANDBOX = "SANDBOX"
    PRODUCTION = "PRODUCTION"
