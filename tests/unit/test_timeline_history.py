"""Tests for timeline replay against the state machine."""

from src.ec_timeline.domain.history import find_history_violations, is_valid_history

FULL = ["CREATE", "ACCEPT", "DEPART", "ARRIVE", "START", "COMPLETE_PENDING", "CONFIRMED", "RATE"]


def test_full_happy_path() -> None:
    assert is_valid_history(FULL)


def test_prepaid_path() -> None:
    assert is_valid_history(["CREATE", "PAID", "ACCEPT", "START", "COMPLETE_PENDING", "CONFIRMED"])


def test_pay_after_service_completes() -> None:
    assert is_valid_history(["CREATE", "ACCEPT", "START", "COMPLETE_PENDING", "PAID", "RATE"])


def test_cancel_then_refund() -> None:
    assert is_valid_history(["CREATE", "PAID", "CANCEL", "REFUND"])


def test_empty() -> None:
    assert find_history_violations([]) == ["timeline is empty"]


def test_must_start_with_create() -> None:
    assert not is_valid_history(["ACCEPT"])


def test_duplicate_create() -> None:
    violations = find_history_violations(["CREATE", "CREATE"])
    assert any("duplicate CREATE" in v for v in violations)


def test_duplicate_paid() -> None:
    assert not is_valid_history(["CREATE", "PAID", "PAID"])


def test_double_accept() -> None:
    assert not is_valid_history(["CREATE", "ACCEPT", "ACCEPT"])


def test_cancel_after_accept() -> None:
    violations = find_history_violations(["CREATE", "ACCEPT", "CANCEL"])
    assert violations == ["#2: CANCEL not allowed from ACCEPTED"]


def test_rate_before_completion() -> None:
    assert not is_valid_history(["CREATE", "ACCEPT", "RATE"])


def test_unknown_event() -> None:
    assert any("unknown event" in v for v in find_history_violations(["CREATE", "TELEPORT"]))
