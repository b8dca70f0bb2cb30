"""SQLite storage adapters."""

from github_notify.adapters.storage.sqlite_accounts import SQLiteAccountRegistry
from github_notify.adapters.storage.sqlite_ledger import SQLiteLedger

__all__ = ["SQLiteAccountRegistry", "SQLiteLedger"]
