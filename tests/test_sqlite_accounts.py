"""Tests for the SQLite account registry."""

from pathlib import Path

import pytest

from github_notify.adapters.storage import SQLiteAccountRegistry, SQLiteLedger
from github_notify.core.errors import AccountNotFoundError


def _registry(tmp_path: Path) -> SQLiteAccountRegistry:
    registry = SQLiteAccountRegistry(tmp_path / "bot.db")
    registry.init_db()
    return registry


def test_add_and_list(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    registry.add(10, "alice", "tok-a")
    registry.add(10, "bob", "tok-b")
    registry.add(20, "carol", "tok-c")

    assert [a.username for a in registry.accounts_for(10)] == ["alice", "bob"]
    assert [(a.recipient_id, a.username) for a in registry.list_active()] == [
        (10, "alice"),
        (10, "bob"),
        (20, "carol"),
    ]


def test_add_again_updates_token_and_reactivates(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    registry.add(10, "alice", "old")
    registry.toggle(10, "alice")

    registry.add(10, "Alice", "new")

    [account] = registry.accounts_for(10)
    assert account.token == "new"
    assert account.is_active


def test_toggle_flips_and_filters_active(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    registry.add(10, "alice", "tok")

    assert registry.toggle(10, "alice") is False
    assert registry.list_active() == []
    assert registry.toggle(10, "ALICE") is True
    assert len(registry.list_active()) == 1


def test_toggle_unknown_account(tmp_path: Path) -> None:
    with pytest.raises(AccountNotFoundError):
        _registry(tmp_path).toggle(10, "ghost")


def test_remove(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    registry.add(10, "alice", "tok")

    assert registry.remove(10, "alice")
    assert not registry.remove(10, "alice")
    assert registry.accounts_for(10) == []


def test_shares_database_with_ledger(tmp_path: Path) -> None:
    path = tmp_path / "shared.db"
    registry = SQLiteAccountRegistry(path)
    ledger = SQLiteLedger(path)
    registry.init_db()
    ledger.init_db()

    registry.add(1, "alice", "tok")

    assert ledger.count() == 0
    assert len(registry.list_active()) == 1
