"""Tests for the renotify gate and the ledger sweep."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from github_notify.core import Alert, AlertType, RenotifyGate, sweep

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
COOL_DOWN = timedelta(seconds=3600)
URL = "https://github.com/acme/api/pull/42"


def _alert(message: str = "👀 review please") -> Alert:
    return Alert(type=AlertType.REVIEW_REQUESTED, message=message, url=URL)


def _ledger(last: datetime = None) -> Mock:
    ledger = Mock()
    ledger.latest_delivery.return_value = last
    return ledger


def test_first_delivery_allowed() -> None:
    gate = RenotifyGate(_ledger(), COOL_DOWN, clock=lambda: T0)
    assert gate.allows(1, _alert())


def test_repeat_within_cool_down_suppressed() -> None:
    gate = RenotifyGate(_ledger(T0), COOL_DOWN, clock=lambda: T0 + timedelta(seconds=10))
    assert not gate.allows(1, _alert())


def test_repeat_after_cool_down_allowed() -> None:
    gate = RenotifyGate(_ledger(T0), COOL_DOWN, clock=lambda: T0 + timedelta(seconds=3601))
    assert gate.allows(1, _alert())


def test_exact_cool_down_boundary_suppressed() -> None:
    """Elapsed time must strictly exceed the cool-down."""
    gate = RenotifyGate(_ledger(T0), COOL_DOWN, clock=lambda: T0 + COOL_DOWN)
    assert not gate.allows(1, _alert())


def test_gate_is_monotonic_in_time() -> None:
    """Once allowed, a later check never flips back to suppressed."""
    gate = RenotifyGate(_ledger(T0), COOL_DOWN)
    decisions = [
        gate.should_deliver(1, URL, AlertType.MENTION, "fp", now=T0 + timedelta(seconds=s))
        for s in (0, 1800, 3600, 3601, 7200, 86400)
    ]
    assert decisions == [False, False, False, True, True, True]


def test_lookup_key_includes_fingerprint() -> None:
    ledger = _ledger()
    gate = RenotifyGate(ledger, COOL_DOWN, clock=lambda: T0)
    alert = _alert()

    gate.allows(7, alert)

    ledger.latest_delivery.assert_called_once_with(7, URL, AlertType.REVIEW_REQUESTED, alert.fingerprint)


def test_record_uses_clock() -> None:
    ledger = _ledger()
    gate = RenotifyGate(ledger, COOL_DOWN, clock=lambda: T0)
    alert = _alert()

    gate.record(7, alert)

    ledger.record_delivery.assert_called_once_with(7, URL, AlertType.REVIEW_REQUESTED, alert.fingerprint, T0)


def test_allows_does_not_write() -> None:
    ledger = _ledger()
    RenotifyGate(ledger, COOL_DOWN, clock=lambda: T0).allows(1, _alert())
    ledger.record_delivery.assert_not_called()


def test_sweep_purges_before_cutoff() -> None:
    ledger = Mock()
    ledger.purge_older_than.return_value = 3

    removed = sweep(ledger, COOL_DOWN, now=T0)

    assert removed == 3
    ledger.purge_older_than.assert_called_once_with(T0 - COOL_DOWN)
