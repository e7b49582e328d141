"""Shared pytest fixtures for ledgerbridge tests.

Provides profile isolation, temporary state and ledger databases, and
in-memory fakes for the source, ledger and login capabilities.
"""

from collections.abc import Generator, Sequence
from decimal import Decimal
from pathlib import Path

import pytest

from ledgerbridge.config import clear_settings_cache, set_current_profile
from ledgerbridge.errors import SourceError
from ledgerbridge.loaders.ledger_loader import DuckDBLedger
from ledgerbridge.schemas import (
    ImportResult,
    LedgerAccount,
    MovementPage,
    NormalizedTransaction,
    SourceAccount,
    SourceMovement,
)
from ledgerbridge.storage import (
    AccountRepository,
    ConfigRepository,
    StateDatabase,
    open_state_database,
)


@pytest.fixture(autouse=True)
def clean_profile_state() -> Generator[None, None, None]:
    """Clear the settings cache and reset the profile around every test."""
    clear_settings_cache()
    set_current_profile("test")

    yield

    clear_settings_cache()
    set_current_profile("test")


def make_movement(index: int, amount: str = "10.00", sign: str = "-") -> SourceMovement:
    """Build a movement whose identifier encodes its position in the feed."""
    return SourceMovement(
        identifier=f"mv-{index}",
        accounting_date="20260218",
        movement_amount=Decimal(amount),
        movement_sign=sign,
        counterparty_name=f"Payee {index}",
        communication_part1="Invoice",
        communication_part2=str(index),
    )


class FakeSource:
    """In-memory source gateway serving a newest-first movement feed."""

    def __init__(self, movements: list[SourceMovement] | None = None):
        self.movements = movements or []
        self.session_valid = True
        self.live_session_valid = True
        self.accounts: list[SourceAccount] = []
        self.calls: list[tuple[str, int, int]] = []
        self.error: SourceError | None = None
        self.fail_after_calls: int | None = None

    def is_session_valid(self) -> bool:
        return self.session_valid

    def validate_session(self) -> bool:
        return self.session_valid and self.live_session_valid

    def fetch_accounts(self) -> list[SourceAccount]:
        return list(self.accounts)

    def fetch_movements(self, iban: str, start: int, max_results: int) -> MovementPage:
        self.calls.append((iban, start, max_results))
        if self.error is not None and (
            self.fail_after_calls is None or len(self.calls) > self.fail_after_calls
        ):
            raise self.error
        return MovementPage(
            movements=self.movements[start : start + max_results],
            total_count=len(self.movements),
        )

    def add_newest(self, count: int) -> None:
        """Prepend ``count`` new movements to the front of the feed."""
        base = len(self.movements)
        new = [make_movement(base + i) for i in range(count)]
        self.movements = list(reversed(new)) + self.movements


class FakeLedger:
    """In-memory ledger keyed on ``(account, imported_id)``."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], NormalizedTransaction] = {}
        self.batches: list[list[NormalizedTransaction]] = []
        self.accounts = [LedgerAccount(id="ledger-1", name="Checking")]
        self.fail_with: str | None = None
        self.raise_error: Exception | None = None

    def import_transactions(
        self, account_id: str, transactions: Sequence[NormalizedTransaction]
    ) -> ImportResult:
        if self.raise_error is not None:
            raise self.raise_error
        self.batches.append(list(transactions))
        if self.fail_with:
            return ImportResult(
                success=False, errors=[self.fail_with], message=self.fail_with
            )
        added = updated = 0
        for t in transactions:
            key = (account_id, t.imported_id)
            if key in self.rows:
                updated += 1
            else:
                added += 1
            self.rows[key] = t
        return ImportResult(
            success=True,
            added=added,
            updated=updated,
            message=f"Imported {added} new, updated {updated} existing transactions",
        )

    def list_accounts(self) -> list[LedgerAccount]:
        return list(self.accounts)

    def create_account(self, name: str) -> LedgerAccount:
        account = LedgerAccount(id=f"ledger-{len(self.accounts) + 1}", name=name)
        self.accounts.append(account)
        return account


class FakeLoginSession:
    """Login session returning scripted poll results."""

    def __init__(self, polls: list[list[SourceAccount] | None] | None = None):
        self.polls = list(polls or [])
        self.started = False
        self.close_calls = 0
        self.poll_error: Exception | None = None

    def start(self) -> None:
        self.started = True

    def poll(self) -> list[SourceAccount] | None:
        if self.poll_error is not None:
            raise self.poll_error
        return self.polls.pop(0) if self.polls else None

    def close(self) -> None:
        self.close_calls += 1


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def state_db(tmp_path: Path) -> StateDatabase:
    return open_state_database(tmp_path / "state.duckdb")


@pytest.fixture
def account_repo(state_db: StateDatabase) -> AccountRepository:
    return AccountRepository(state_db)


@pytest.fixture
def config_repo(state_db: StateDatabase) -> ConfigRepository:
    return ConfigRepository(state_db)


@pytest.fixture
def duckdb_ledger(tmp_path: Path) -> DuckDBLedger:
    return DuckDBLedger(tmp_path / "ledger.duckdb")


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def movement_factory():
    return make_movement


@pytest.fixture
def login_session_factory():
    return FakeLoginSession
