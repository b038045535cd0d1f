"""Tests for the order state machine tables and guards."""

from datetime import UTC, datetime

import pytest

from src.ec_common.enums import OrderStatus
from src.ec_common.errors import InvalidOrderStateError, OrderAlreadyClaimedError
from src.ec_order.domain.models import Order
from src.ec_order.domain.state_machine import (
    ALL_TRANSITIONS,
    CANCEL,
    CONFIRM,
    REFUND,
    START,
    accept_statuses,
    ensure_claimable,
    ensure_transition_allowed,
)

S = OrderStatus


def _order(status: str = "PENDING", angel_id: str | None = None) -> Order:
    return Order(
        id="o-1",
        order_no="20261017000001",
        user_id="u-1",
        elderly_id="e-1",
        service_type_id="ST-ESCORT-MEDICAL",
        price=8000,
        service_time=datetime.now(UTC),
        address="addr",
        status=status,
        angel_id=angel_id,
    )


class TestTransitionTable:
    def test_no_transition_leaves_a_terminal_status_except_refund(self) -> None:
        terminal = {S.COMPLETED.value, S.CANCELLED.value, S.REFUNDED.value}
        for t in ALL_TRANSITIONS:
            if t is REFUND:
                assert t.from_statuses & terminal == {S.CANCELLED.value}
            else:
                assert not t.from_statuses & terminal, t.action

    def test_start_skips_are_allowed(self) -> None:
        assert START.from_statuses == {S.ACCEPTED.value, S.ON_WAY.value, S.ARRIVED.value}
        assert START.backfill_fields == ("arrived_at",)

    def test_family_actions_use_owner_column(self) -> None:
        for t in (CONFIRM, CANCEL, REFUND):
            assert t.actor_column == "user_id"
        for t in ALL_TRANSITIONS:
            if t not in (CONFIRM, CANCEL, REFUND):
                assert t.actor_column == "angel_id"

    def test_timestamp_fields_exist_on_order(self) -> None:
        order = _order()
        for t in ALL_TRANSITIONS:
            for name in (t.timestamp_field, *t.backfill_fields):
                assert hasattr(order, name)


class TestAcceptStatuses:
    def test_pay_after_service_allowed(self) -> None:
        assert accept_statuses(True) == {S.PENDING.value, S.PAID.value}

    def test_prepay_required(self) -> None:
        assert accept_statuses(False) == {S.PAID.value}


class TestGuards:
    @pytest.mark.parametrize("status", ["ACCEPTED", "IN_PROGRESS", "COMPLETED", "REFUNDED"])
    def test_cancel_only_before_accept(self, status: str) -> None:
        with pytest.raises(InvalidOrderStateError):
            ensure_transition_allowed(_order(status), CANCEL)

    def test_cancel_allowed_when_paid(self) -> None:
        ensure_transition_allowed(_order("PAID"), CANCEL)

    def test_claim_of_assigned_order(self) -> None:
        with pytest.raises(OrderAlreadyClaimedError):
            ensure_claimable(_order("ACCEPTED", angel_id="a-1"), accept_statuses(True))

    def test_claim_of_cancelled_order(self) -> None:
        with pytest.raises(InvalidOrderStateError) as exc_info:
            ensure_claimable(_order("CANCELLED"), accept_statuses(True))
        assert not isinstance(exc_info.value, OrderAlreadyClaimedError)
