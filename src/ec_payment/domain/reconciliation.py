"""Reconciliation report — ledger vs. cache, and completed-but-unsettled orders."""

from dataclasses import dataclass, field

from src.ec_payment.domain.models import BalanceMismatch


@dataclass
class ReconciliationReport:
    balance_mismatches: list[BalanceMismatch] = field(default_factory=list)
    unsettled_order_ids: list[str] = field(default_factory=list)
    # order_id -> history problems found in its timeline
    timeline_violations: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not (self.balance_mismatches or self.unsettled_order_ids or self.timeline_violations)

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "balance_mismatches": [
                {
                    "angel_id": m.angel_id,
                    "cached_balance": m.cached_balance,
                    "ledger_balance": m.ledger_balance,
                    "difference": m.difference,
                }
                for m in self.balance_mismatches
            ],
            "unsettled_order_ids": list(self.unsettled_order_ids),
            "timeline_violations": dict(self.timeline_violations),
        }


@dataclass
class SettleRunResult:
    settled: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {"settled": self.settled, "skipped": self.skipped, "failed": self.failed}
