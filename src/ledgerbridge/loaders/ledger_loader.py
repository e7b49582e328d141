"""DuckDB-backed budget ledger.

Transactions are loaded in batches through a Polars DataFrame and keyed on
``(account, imported_id)``, so re-importing a batch replaces rows instead of
duplicating them.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import duckdb
import polars as pl

from ..errors import LedgerImportError
from ..schemas import ImportResult, LedgerAccount, NormalizedTransaction

logger = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).parent.parent / "sql" / "schema" / "ledger.sql"

_TRANSACTION_SCHEMA = {
    "account": pl.String,
    "imported_id": pl.String,
    "date": pl.String,
    "amount": pl.Int64,
    "payee_name": pl.String,
    "notes": pl.String,
}


def transactions_frame(
    account_id: str, transactions: Sequence[NormalizedTransaction]
) -> pl.DataFrame:
    """Build the load frame, one row per ``imported_id`` (last one wins)."""
    rows = [
        {
            "account": account_id,
            "imported_id": t.imported_id,
            "date": t.date,
            "amount": t.amount,
            "payee_name": t.payee_name,
            "notes": t.notes,
        }
        for t in transactions
    ]
    df = pl.DataFrame(rows, schema=_TRANSACTION_SCHEMA)
    return df.unique(subset=["imported_id"], keep="last", maintain_order=True)


class DuckDBLedger:
    """Ledger gateway writing to a local DuckDB database."""

    def __init__(self, database_path: Path | str):
        """Initialize the ledger.

        Args:
            database_path: Path to the DuckDB ledger file
        """
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._schema_ready = False

    def create_tables(self) -> None:
        """Create ledger tables if they do not exist."""
        if not SCHEMA_FILE.exists():
            raise FileNotFoundError(f"SQL schema file not found: {SCHEMA_FILE}")
        with duckdb.connect(str(self.database_path)) as conn:
            conn.execute(SCHEMA_FILE.read_text(encoding="utf-8"))
        self._schema_ready = True
        logger.debug(f"Ledger tables ready in {self.database_path}")

    def list_accounts(self) -> list[LedgerAccount]:
        self._ensure_schema()
        with duckdb.connect(str(self.database_path)) as conn:
            rows = conn.execute(
                "SELECT id, name FROM ledger_accounts ORDER BY name"
            ).fetchall()
        return [LedgerAccount(id=row[0], name=row[1]) for row in rows]

    def create_account(self, name: str) -> LedgerAccount:
        if not name.strip():
            raise ValueError("Ledger account name cannot be empty")
        self._ensure_schema()
        account = LedgerAccount(id=str(uuid4()), name=name.strip())
        with duckdb.connect(str(self.database_path)) as conn:
            conn.execute(
                "INSERT INTO ledger_accounts (id, name, created_at) VALUES (?, ?, ?)",
                [account.id, account.name, datetime.now()],
            )
        logger.info(f"Created ledger account {account.name} ({account.id})")
        return account

    def import_transactions(
        self, account_id: str, transactions: Sequence[NormalizedTransaction]
    ) -> ImportResult:
        """Import a batch into ``account_id``; failures come back in the result."""
        try:
            added, updated = self._load(account_id, transactions)
        except (duckdb.Error, LedgerImportError) as e:
            logger.error(f"Ledger import into {account_id} failed: {e}")
            return ImportResult(
                success=False,
                errors=[str(e)],
                message=f"Import failed: {e}",
            )

        return ImportResult(
            success=True,
            added=added,
            updated=updated,
            message=f"Imported {added} new, updated {updated} existing transactions",
        )

    def _load(
        self, account_id: str, transactions: Sequence[NormalizedTransaction]
    ) -> tuple[int, int]:
        self._ensure_schema()
        df = transactions_frame(account_id, transactions)

        with duckdb.connect(str(self.database_path)) as conn:
            known = conn.execute(
                "SELECT 1 FROM ledger_accounts WHERE id = ?", [account_id]
            ).fetchone()
            if not known:
                raise LedgerImportError(f"Unknown ledger account: {account_id}")
            if df.is_empty():
                return 0, 0

            existing = {
                row[0]
                for row in conn.execute(
                    "SELECT imported_id FROM ledger_transactions WHERE account = ?",
                    [account_id],
                ).fetchall()
            }
            conn.execute(
                """
                INSERT OR REPLACE INTO ledger_transactions
                (account, imported_id, date, amount, payee_name, notes, imported_at)
                SELECT account, imported_id, date::DATE, amount, payee_name, notes,
                       current_timestamp::TIMESTAMP
                FROM df
                """
            )

        updated = sum(1 for imported_id in df["imported_id"] if imported_id in existing)
        added = len(df) - updated
        logger.info(f"Loaded {added} new and {updated} existing transaction(s)")
        return added, updated

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            self.create_tables()


__all__ = ["DuckDBLedger", "transactions_frame", "SCHEMA_FILE"]
