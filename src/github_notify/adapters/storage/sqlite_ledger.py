"""SQLite delivery ledger.

Implements the core Ledger contract as an append-only table.
"""

from datetime import datetime
from typing import Optional

from github_notify.adapters.storage.connection import SQLiteDatabase, from_epoch, to_epoch
from github_notify.core import AlertType, Ledger


class SQLiteLedger(SQLiteDatabase, Ledger):
    """Thin SQLite wrapper that satisfies the Ledger contract."""

    def init_db(self) -> None:
        """Create the deliveries table and its lookup indexes if missing."""
        with self._connect() as conn:
            # One row per successful delivery. Rows are never updated; the
            # newest delivered_at for a key decides gating, and the sweep
            # deletes rows once they age past the cool-down.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS deliveries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    recipient_id INTEGER NOT NULL,
                    item_url TEXT NOT NULL,
                    notification_type TEXT NOT NULL,
                    fingerprint TEXT NOT NULL,
                    delivered_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_deliveries_key
                ON deliveries (recipient_id, item_url, notification_type, fingerprint)
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_deliveries_delivered_at ON deliveries (delivered_at)"
            )

    def latest_delivery(
        self,
        recipient_id: int,
        item_url: str,
        notification_type: AlertType,
        fingerprint: str,
    ) -> Optional[datetime]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT MAX(delivered_at) AS delivered_at
                FROM deliveries
                WHERE recipient_id = ? AND item_url = ? AND notification_type = ? AND fingerprint = ?
                """,
                (recipient_id, item_url, AlertType(notification_type).value, fingerprint),
            ).fetchone()
        if row is None or row["delivered_at"] is None:
            return None
        return from_epoch(row["delivered_at"])

    def record_delivery(
        self,
        recipient_id: int,
        item_url: str,
        notification_type: AlertType,
        fingerprint: str,
        delivered_at: datetime,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO deliveries (recipient_id, item_url, notification_type, fingerprint, delivered_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    recipient_id,
                    item_url,
                    AlertType(notification_type).value,
                    fingerprint,
                    to_epoch(delivered_at),
                ),
            )

    def purge_older_than(self, cutoff: datetime) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM deliveries WHERE delivered_at < ?",
                (to_epoch(cutoff),),
            )
            return cur.rowcount

    def count(self) -> int:
        """Number of rows currently held."""
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM deliveries").fetchone()
        return int(row["n"])
