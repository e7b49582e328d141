"""DuckDB state database and schema migrations.

Migrations are plain SQL files in ``ledgerbridge/sql/migrations`` named
``NNNN_description.sql``; each one is applied once, in version order, inside
its own transaction and recorded in ``schema_migrations``.
"""

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "sql" / "migrations"

_MIGRATION_NAME = re.compile(r"^(\d+)_(\w+)\.sql$")


@dataclass(frozen=True)
class Migration:
    """A single versioned schema change."""

    version: int
    name: str
    path: Path

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Return the migrations found in ``directory`` sorted by version.

    Raises:
        FileNotFoundError: If the migrations directory is missing
        ValueError: If two files claim the same version
    """
    if not directory.exists():
        raise FileNotFoundError(f"Migrations directory not found: {directory}")

    migrations: dict[int, Migration] = {}
    for sql_path in directory.glob("*.sql"):
        match = _MIGRATION_NAME.match(sql_path.name)
        if not match:
            logger.warning(f"Ignoring unrecognized migration file: {sql_path.name}")
            continue
        version = int(match.group(1))
        if version in migrations:
            raise ValueError(f"Duplicate migration version {version}: {sql_path.name}")
        migrations[version] = Migration(version, match.group(2), sql_path)

    return [migrations[v] for v in sorted(migrations)]


class StateDatabase:
    """Handle on the DuckDB file holding accounts and configuration."""

    def __init__(
        self,
        database_path: Path | str,
        migrations_dir: Path = MIGRATIONS_DIR,
    ):
        """Initialize the state database handle.

        Args:
            database_path: Path to the DuckDB database file
            migrations_dir: Directory holding the SQL migration files
        """
        self.database_path = Path(database_path)
        self.migrations_dir = migrations_dir
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connect(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Open a short-lived connection, closed on exit."""
        conn = duckdb.connect(str(self.database_path))
        try:
            yield conn
        finally:
            conn.close()

    def applied_versions(self) -> set[int]:
        with self.connect() as conn:
            self._ensure_migrations_table(conn)
            rows = conn.execute("SELECT version FROM schema_migrations").fetchall()
        return {row[0] for row in rows}

    def migrate(self) -> list[Migration]:
        """Apply pending migrations.

        Returns:
            list[Migration]: The migrations applied by this call
        """
        applied = self.applied_versions()
        pending = [
            m for m in discover_migrations(self.migrations_dir)
            if m.version not in applied
        ]
        if not pending:
            return []

        logger.info(f"Running {len(pending)} migration(s)...")
        with self.connect() as conn:
            for migration in pending:
                logger.info(f"  [{migration.version}] {migration.name}")
                conn.begin()
                try:
                    conn.execute(migration.read_sql())
                    conn.execute(
                        "INSERT INTO schema_migrations (version, name) VALUES (?, ?)",
                        [migration.version, migration.name],
                    )
                    conn.commit()
                except duckdb.Error:
                    conn.rollback()
                    logger.error(f"Migration {migration.version} failed")
                    raise

        logger.info("Migrations complete")
        return pending

    @staticmethod
    def _ensure_migrations_table(conn: duckdb.DuckDBPyConnection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                name VARCHAR NOT NULL,
                applied_at TIMESTAMP DEFAULT current_timestamp
            )
        """)


def open_state_database(database_path: Path | str) -> StateDatabase:
    """Open the state database and bring its schema up to date."""
    database = StateDatabase(database_path)
    database.migrate()
    return database


__all__ = [
    "MIGRATIONS_DIR",
    "Migration",
    "StateDatabase",
    "discover_migrations",
    "open_state_database",
]
