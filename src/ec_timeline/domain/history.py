"""Check that a recorded timeline is a walk through the order state machine.

Used by the reconciliation report; a violation means some code path
wrote a transition it should not have been able to reach.
"""

from collections.abc import Sequence

from src.ec_common.enums import OrderStatus, TimelineEvent

S = OrderStatus
E = TimelineEvent

# event -> (statuses it may follow, status it leads to); None keeps the status
_EVENT_RULES: dict[E, tuple[frozenset[S], S | None]] = {
    E.ACCEPT: (frozenset({S.PENDING, S.PAID}), S.ACCEPTED),
    E.DEPART: (frozenset({S.ACCEPTED}), S.ON_WAY),
    E.ARRIVE: (frozenset({S.ON_WAY}), S.ARRIVED),
    E.START: (frozenset({S.ACCEPTED, S.ON_WAY, S.ARRIVED}), S.IN_PROGRESS),
    E.COMPLETE_PENDING: (frozenset({S.IN_PROGRESS}), S.PENDING_CONFIRM),
    E.CONFIRMED: (frozenset({S.PENDING_CONFIRM}), S.COMPLETED),
    E.CANCEL: (frozenset({S.PENDING, S.PAID}), S.CANCELLED),
    E.REFUND: (frozenset({S.PAID, S.CANCELLED}), S.REFUNDED),
    E.RATE: (frozenset({S.COMPLETED}), None),
}

_PAID_TRANSITIONS: dict[S, S] = {
    S.PENDING: S.PAID,
    S.PENDING_CONFIRM: S.COMPLETED,
}


def find_history_violations(events: Sequence[str]) -> list[str]:
    """Replay event codes from PENDING; return human-readable violations (empty == valid)."""
    violations: list[str] = []
    if not events:
        return ["timeline is empty"]
    if events[0] != E.CREATE:
        violations.append(f"first event is {events[0]}, expected CREATE")

    status = S.PENDING
    seen: set[E] = {E.CREATE}
    for index, raw in enumerate(events[1:], start=1):
        try:
            event = E(raw)
        except ValueError:
            violations.append(f"#{index}: unknown event {raw}")
            continue

        if event in (E.CREATE, E.PAID, E.CONFIRMED, E.RATE, E.REFUND) and event in seen:
            violations.append(f"#{index}: duplicate {event.value}")
        seen.add(event)

        if event == E.CREATE:
            continue
        if event == E.PAID:
            # Payment may land in any non-refunded status; it only moves two of them
            if status == S.REFUNDED:
                violations.append(f"#{index}: PAID after REFUNDED")
            status = _PAID_TRANSITIONS.get(status, status)
            continue

        allowed, target = _EVENT_RULES[event]
        if status not in allowed:
            violations.append(f"#{index}: {event.value} not allowed from {status.value}")
            continue
        if target is not None:
            status = target
    return violations


def is_valid_history(events: Sequence[str]) -> bool:
    return not find_history_violations(events)
