"""ReconciliationService against the in-memory store."""

import dataclasses
from datetime import UTC, datetime
from unittest.mock import AsyncMock

from src.ec_admin.application.service import ReconciliationService
from src.ec_order.domain.models import Order
from tests.unit.conftest import World


def _completed_order(order_id: str, angel_id: str = "a-1") -> Order:
    return Order(
        id=order_id,
        order_no=f"20261017{order_id}",
        user_id="u-1",
        elderly_id="e-1",
        service_type_id="ST-ESCORT-MEDICAL",
        price=8000,
        service_time=datetime.now(UTC),
        address="addr",
        status="COMPLETED",
        angel_id=angel_id,
    )


def _service(w: World) -> ReconciliationService:
    return ReconciliationService(
        ledger=w.ledger, order_repo=w.orders, timeline_repo=w.timeline, settlement=w.settlement
    )


class TestReport:
    async def test_clean_store_is_ok(self, world: World) -> None:
        report = await _service(world).report(world.db)
        assert report.ok
        assert report.to_dict()["ok"] is True

    async def test_detects_unsettled_order_and_drift(self, world: World) -> None:
        world.store.orders["o-1"] = _completed_order("o-1")
        world.angel_b.balance = 500

        report = await _service(world).report(world.db)

        assert not report.ok
        assert report.unsettled_order_ids == ["o-1"]
        assert report.timeline_violations["o-1"] == ["timeline is empty"]
        drift = report.to_dict()["balance_mismatches"]
        assert drift == [
            {"angel_id": "a-2", "cached_balance": 500, "ledger_balance": 0, "difference": 500}
        ]


class TestSettleUnsettled:
    async def test_settles_each_once(self, world: World) -> None:
        world.store.orders["o-1"] = _completed_order("o-1")
        world.store.orders["o-2"] = _completed_order("o-2")
        svc = _service(world)

        first = await svc.settle_unsettled(world.db)
        second = await svc.settle_unsettled(world.db)

        assert sorted(first.settled) == ["o-1", "o-2"]
        assert second.to_dict() == {"settled": [], "skipped": [], "failed": []}
        assert world.angel_a.balance == 12800
        assert world.db.commits == 2

    async def test_failure_is_isolated(self, world: World) -> None:
        world.store.orders["o-1"] = _completed_order("o-1", angel_id="ghost")
        world.store.orders["o-2"] = _completed_order("o-2")

        result = await _service(world).settle_unsettled(world.db)

        assert result.failed == ["o-1"]
        assert result.settled == ["o-2"]
        assert world.db.rollbacks == 1
        assert world.angel_a.balance == 6400

    async def test_non_completed_skipped(self, world: World) -> None:
        world.store.orders["o-1"] = dataclasses.replace(_completed_order("o-1"), status="PENDING_CONFIRM")
        # the ledger query only returns COMPLETED ids, so feed one that changed since
        world.ledger.find_unsettled_order_ids = AsyncMock(return_value=["o-1"])  # type: ignore[method-assign]

        result = await _service(world).settle_unsettled(world.db)

        assert result.skipped == ["o-1"]
