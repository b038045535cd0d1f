"""Order lifecycle state machine.

    PENDING -> PAID -> ACCEPTED -> ON_WAY -> ARRIVED -> IN_PROGRESS
        -> PENDING_CONFIRM -> COMPLETED
    PENDING | PAID -> CANCELLED
    PAID | CANCELLED (paid) -> REFUNDED

Accept may also start from PENDING (pay-after-service). Start accepts any
of ACCEPTED / ON_WAY / ARRIVED because field work is not always sequential.
Payment transitions (PENDING -> PAID, PENDING_CONFIRM -> COMPLETED) are
driven by the payment adapter, not by a Transition here.

Every guard is re-checked by the repository's conditional UPDATE; the
checks in this module only produce a precise error before touching the DB.
"""

from dataclasses import dataclass

from src.ec_common.enums import OperatorRole, OrderStatus, TimelineEvent
from src.ec_common.errors import InvalidOrderStateError, OrderAlreadyClaimedError
from src.ec_order.domain.models import Order

S = OrderStatus


@dataclass(frozen=True)
class Transition:
    action: str
    from_statuses: frozenset[str]
    to_status: str
    timestamp_field: str
    event: TimelineEvent
    operator: OperatorRole
    content: str
    actor_column: str  # "angel_id" or "user_id": who may perform it
    backfill_fields: tuple[str, ...] = ()


def _statuses(*statuses: OrderStatus) -> frozenset[str]:
    return frozenset(s.value for s in statuses)


DEPART = Transition(
    action="depart",
    from_statuses=_statuses(S.ACCEPTED),
    to_status=S.ON_WAY.value,
    timestamp_field="departed_at",
    event=TimelineEvent.DEPART,
    operator=OperatorRole.ANGEL,
    content="Angel has departed",
    actor_column="angel_id",
)

ARRIVE = Transition(
    action="arrive",
    from_statuses=_statuses(S.ON_WAY),
    to_status=S.ARRIVED.value,
    timestamp_field="arrived_at",
    event=TimelineEvent.ARRIVE,
    operator=OperatorRole.ANGEL,
    content="Angel has arrived",
    actor_column="angel_id",
)

START = Transition(
    action="start",
    from_statuses=_statuses(S.ACCEPTED, S.ON_WAY, S.ARRIVED),
    to_status=S.IN_PROGRESS.value,
    timestamp_field="started_at",
    event=TimelineEvent.START,
    operator=OperatorRole.ANGEL,
    content="Service started",
    actor_column="angel_id",
    backfill_fields=("arrived_at",),
)

COMPLETE = Transition(
    action="complete",
    from_statuses=_statuses(S.IN_PROGRESS),
    to_status=S.PENDING_CONFIRM.value,
    timestamp_field="completed_at",
    event=TimelineEvent.COMPLETE_PENDING,
    operator=OperatorRole.ANGEL,
    content="Service finished, waiting for confirmation",
    actor_column="angel_id",
)

CONFIRM = Transition(
    action="confirm",
    from_statuses=_statuses(S.PENDING_CONFIRM),
    to_status=S.COMPLETED.value,
    # completed_at was stamped by COMPLETE; COALESCE keeps it
    timestamp_field="completed_at",
    event=TimelineEvent.CONFIRMED,
    operator=OperatorRole.FAMILY,
    content="Order confirmed complete",
    actor_column="user_id",
)

CANCEL = Transition(
    action="cancel",
    from_statuses=_statuses(S.PENDING, S.PAID),
    to_status=S.CANCELLED.value,
    timestamp_field="cancelled_at",
    event=TimelineEvent.CANCEL,
    operator=OperatorRole.FAMILY,
    content="Order cancelled",
    actor_column="user_id",
)

REFUND = Transition(
    action="refund",
    from_statuses=_statuses(S.PAID, S.CANCELLED),
    to_status=S.REFUNDED.value,
    timestamp_field="refunded_at",
    event=TimelineEvent.REFUND,
    operator=OperatorRole.SYSTEM,
    content="Refund issued",
    actor_column="user_id",
)

ALL_TRANSITIONS: tuple[Transition, ...] = (DEPART, ARRIVE, START, COMPLETE, CONFIRM, CANCEL, REFUND)


def accept_statuses(allow_before_payment: bool) -> frozenset[str]:
    """Statuses an unassigned order can be claimed from."""
    if allow_before_payment:
        return _statuses(S.PENDING, S.PAID)
    return _statuses(S.PAID)


def ensure_transition_allowed(order: Order, transition: Transition) -> None:
    if order.status not in transition.from_statuses:
        raise InvalidOrderStateError(order.id, order.status, transition.action)


def ensure_claimable(order: Order, allowed: frozenset[str]) -> None:
    if order.angel_id is not None:
        raise OrderAlreadyClaimedError(order.id, order.status)
    if order.status not in allowed:
        raise InvalidOrderStateError(order.id, order.status, "accept")
