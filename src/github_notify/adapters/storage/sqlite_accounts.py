"""SQLite account registry."""

from github_notify.adapters.storage.connection import SQLiteDatabase
from github_notify.core import AccountRegistry, MonitoredAccount
from github_notify.core.errors import AccountNotFoundError


class SQLiteAccountRegistry(SQLiteDatabase, AccountRegistry):
    """Chat -> GitHub account mapping stored next to the ledger."""

    def init_db(self) -> None:
        with self._connect() as conn:
            # Usernames compare case-insensitively, like GitHub logins.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    recipient_id INTEGER NOT NULL,
                    username TEXT NOT NULL COLLATE NOCASE,
                    token TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    PRIMARY KEY (recipient_id, username)
                )
                """
            )

    def add(self, recipient_id: int, username: str, token: str) -> None:
        """Upsert an account; re-adding refreshes the token and re-activates it."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO accounts (recipient_id, username, token, is_active)
                VALUES (?, ?, ?, 1)
                ON CONFLICT(recipient_id, username) DO UPDATE SET token = excluded.token, is_active = 1
                """,
                (recipient_id, username, token),
            )

    def remove(self, recipient_id: int, username: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM accounts WHERE recipient_id = ? AND username = ?",
                (recipient_id, username),
            )
            return cur.rowcount > 0

    def toggle(self, recipient_id: int, username: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE accounts SET is_active = 1 - is_active
                WHERE recipient_id = ? AND username = ?
                """,
                (recipient_id, username),
            )
            if cur.rowcount == 0:
                raise AccountNotFoundError(f"No account {username} registered for chat {recipient_id}")
            row = conn.execute(
                "SELECT is_active FROM accounts WHERE recipient_id = ? AND username = ?",
                (recipient_id, username),
            ).fetchone()
        return bool(row["is_active"])

    def accounts_for(self, recipient_id: int) -> list[MonitoredAccount]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT recipient_id, username, token, is_active FROM accounts
                WHERE recipient_id = ? ORDER BY username
                """,
                (recipient_id,),
            ).fetchall()
        return [self._to_account(row) for row in rows]

    def list_active(self) -> list[MonitoredAccount]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT recipient_id, username, token, is_active FROM accounts
                WHERE is_active = 1 ORDER BY recipient_id, username
                """
            ).fetchall()
        return [self._to_account(row) for row in rows]

    @staticmethod
    def _to_account(row) -> MonitoredAccount:
        return MonitoredAccount(
            recipient_id=int(row["recipient_id"]),
            username=row["username"],
            token=row["token"],
            is_active=bool(row["is_active"]),
        )
