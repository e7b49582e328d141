"""Capabilities the sync engine consumes.

The engine only depends on these protocols; concrete clients live in
:mod:`ledgerbridge.connectors.homebank` and :mod:`ledgerbridge.loaders`.
"""

from collections.abc import Sequence
from typing import Protocol

from ..schemas import (
    ImportResult,
    LedgerAccount,
    MovementPage,
    NormalizedTransaction,
    SourceAccount,
)


class SourceGateway(Protocol):
    """Paginated read access to an account's movements.

    Pages are ordered newest first: offset 0 holds the most recent movement.
    The incremental sync relies on this to take the first N rows as the N
    newest ones.
    """

    def is_session_valid(self) -> bool:
        """Return True when session state is available for requests."""
        ...

    def validate_session(self) -> bool:
        """Check the session against the source with a live request."""
        ...

    def fetch_accounts(self) -> list[SourceAccount]:
        """List the accounts visible to the current session."""
        ...

    def fetch_movements(self, iban: str, start: int, max_results: int) -> MovementPage:
        """Fetch up to ``max_results`` movements starting at offset ``start``.

        Raises:
            SessionExpiredError: The source rejected the session
            SourceFetchError: Any other transport or HTTP failure
        """
        ...


class LoginSession(Protocol):
    """Interactive authentication driven by something outside this process."""

    def start(self) -> None:
        """Open the login session (e.g. announce where to log in)."""
        ...

    def poll(self) -> list[SourceAccount] | None:
        """Return the discovered accounts once a valid session exists, else None."""
        ...

    def close(self) -> None:
        """Release resources held by the session. Safe to call repeatedly."""
        ...


class LedgerGateway(Protocol):
    """Write access to the budgeting ledger."""

    def import_transactions(
        self, account_id: str, transactions: Sequence[NormalizedTransaction]
    ) -> ImportResult:
        """Import a batch, deduplicated on ``imported_id``.

        Re-importing the same batch must not create duplicates. Failures are
        reported in the returned result, never raised.
        """
        ...

    def list_accounts(self) -> list[LedgerAccount]:
        ...

    def create_account(self, name: str) -> LedgerAccount:
        ...


__all__ = ["SourceGateway", "LoginSession", "LedgerGateway"]
