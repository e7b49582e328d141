"""Account registry and per-account sync checkpoints."""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ..schemas import Account, SourceAccount
from .database import StateDatabase

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = (
    "id, iban, alias, last_sync_time, ledger_account_id, last_synced_row_count"
)

UPSERT_ACCOUNT_SQL = """
    INSERT INTO accounts (
        id, iban, alias, last_sync_time, ledger_account_id, last_synced_row_count
    )
    VALUES (?, ?, ?, NULL, NULL, 0)
    ON CONFLICT (id) DO UPDATE SET iban = excluded.iban, alias = excluded.alias
"""


class AccountRepository:
    """DuckDB-backed store of source accounts.

    Every method touches at most one account row, except the bulk upsert,
    which runs in a single transaction.
    """

    def __init__(self, database: StateDatabase):
        self.database = database

    def find_all(self) -> list[Account]:
        with self.database.connect() as conn:
            rows = conn.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM accounts ORDER BY alias, id"  # noqa: S608
            ).fetchall()
        return [self._map_row(row) for row in rows]

    def find_by_id(self, account_id: str) -> Account | None:
        return self._find_one("id", account_id)

    def find_by_iban(self, iban: str) -> Account | None:
        return self._find_one("iban", iban)

    def upsert_from_source(self, accounts: Iterable[SourceAccount]) -> int:
        """Insert new accounts and refresh the identity of known ones.

        Known accounts keep their ledger link, row count and last sync time;
        only ``iban`` and ``alias`` are overwritten. An account whose IBAN is
        already held by another id is skipped.

        Returns:
            int: Number of accounts written
        """
        # Last occurrence wins when the source lists an id twice
        unique = {account.id: account for account in accounts if account.id}
        if not unique:
            return 0

        with self.database.connect() as conn:
            conn.begin()
            try:
                owners = {
                    iban: account_id
                    for account_id, iban in conn.execute(
                        "SELECT id, iban FROM accounts"
                    ).fetchall()
                    if account_id not in unique
                }
                rows = []
                for account in unique.values():
                    owner = owners.setdefault(account.iban, account.id)
                    if owner != account.id:
                        logger.warning(
                            f"Skipping account {account.id}: IBAN {account.iban} "
                            f"already belongs to account {owner}"
                        )
                        continue
                    rows.append([account.id, account.iban, account.alias])
                if rows:
                    conn.executemany(UPSERT_ACCOUNT_SQL, rows)
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        logger.info(f"Upserted {len(rows)} account(s) from source")
        return len(rows)

    def link_ledger_account(self, account_id: str, ledger_account_id: str) -> None:
        if not ledger_account_id:
            raise ValueError("Ledger account id cannot be empty")
        with self.database.connect() as conn:
            conn.execute(
                "UPDATE accounts SET ledger_account_id = ? WHERE id = ?",
                [ledger_account_id, account_id],
            )
        logger.info(f"Linked account {account_id} to ledger account {ledger_account_id}")

    def unlink_ledger_account(self, account_id: str) -> None:
        """Remove the ledger link and reset the sync checkpoint to zero."""
        with self.database.connect() as conn:
            conn.execute(
                "UPDATE accounts SET ledger_account_id = NULL, "
                "last_synced_row_count = 0 WHERE id = ?",
                [account_id],
            )
        logger.info(f"Unlinked account {account_id}")

    def get_ledger_account_id(self, account_id: str) -> str | None:
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT ledger_account_id FROM accounts WHERE id = ?", [account_id]
            ).fetchone()
        return row[0] if row else None

    def update_sync_status(
        self,
        account_id: str,
        row_count: int | None = None,
        synced_at: datetime | None = None,
    ) -> None:
        """Stamp the last sync time and, when given, the new row count."""
        synced_at = synced_at or datetime.now()
        with self.database.connect() as conn:
            if row_count is None:
                conn.execute(
                    "UPDATE accounts SET last_sync_time = ? WHERE id = ?",
                    [synced_at, account_id],
                )
            else:
                conn.execute(
                    "UPDATE accounts SET last_sync_time = ?, "
                    "last_synced_row_count = ? WHERE id = ?",
                    [synced_at, row_count, account_id],
                )

    def get_last_synced_row_count(self, account_id: str) -> int:
        """Return the checkpoint for ``account_id``; 0 when unknown."""
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT last_synced_row_count FROM accounts WHERE id = ?",
                [account_id],
            ).fetchone()
        return (row[0] or 0) if row else 0

    def _find_one(self, column: str, value: str) -> Account | None:
        with self.database.connect() as conn:
            row = conn.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE {column} = ? LIMIT 1",  # noqa: S608  # column is a literal from this module
                [value],
            ).fetchone()
        return self._map_row(row) if row else None

    @staticmethod
    def _map_row(row: tuple[Any, ...]) -> Account:
        return Account(
            id=row[0],
            iban=row[1],
            alias=row[2],
            last_sync_time=row[3],
            ledger_account_id=row[4],
            last_synced_row_count=row[5] or 0,
        )


__all__ = ["AccountRepository", "UPSERT_ACCOUNT_SQL"]
