"""Incremental synchronization of source movements into the ledger.

One run for one account:

1. Check the session, the account and its ledger link.
2. Probe the source with a one-row page to learn the total row count.
3. Compare it with the account's checkpoint (rows already seen). Without new
   rows the run ends here, touching neither the ledger nor the checkpoint.
4. Page through the source from offset 0. Pages are newest first, so an
   incremental run keeps only the first ``total - checkpoint`` rows.
5. Map the rows and import them as one batch.
6. Advance the checkpoint to the probed total, whatever the import outcome.
   It never moves backwards, even when a full sync sees a shrunk source.
   A failed import is retried by the caller, not by re-fetching.

Every public method returns a result object; no exception escapes. A single
lock per service rejects a login or sync while another one is running.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from ..config import LedgerBridgeSettings
from ..connectors.base import LedgerGateway, LoginSession, SourceGateway
from ..errors import (
    LoginTimeoutError,
    OperationInProgressError,
    SessionExpiredError,
    SourceError,
    SyncFailure,
)
from ..schemas import (
    Account,
    AccountStatus,
    ImportResult,
    LoginResult,
    NormalizedTransaction,
    SourceAccount,
    SourceMovement,
    SyncResult,
    SyncState,
    SyncStatus,
)
from ..storage.accounts import AccountRepository
from ..storage.config_store import ConfigRepository
from .debug import save_sync_snapshot
from .mapper import TransactionMapper

logger = logging.getLogger(__name__)

SUMMARY_SIZE = 10


@dataclass
class SyncConfig:
    """Tunables for sync runs and the login flow."""

    page_size: int = 200
    login_timeout: float = 300.0
    poll_interval: float = 5.0
    save_debug_snapshots: bool = True
    snapshot_path: Path = Path("data/movements")

    @classmethod
    def from_settings(cls, settings: LedgerBridgeSettings) -> "SyncConfig":
        return cls(
            page_size=settings.source.page_size,
            login_timeout=settings.source.login_timeout,
            poll_interval=settings.source.poll_interval,
            save_debug_snapshots=settings.data.save_debug_snapshots,
            snapshot_path=settings.data.movements_path,
        )


@dataclass
class SyncRun:
    """State of one sync invocation; discarded when the call returns."""

    account: Account
    ledger_account_id: str
    full_sync: bool
    last_synced_row_count: int
    total_count: int = 0
    target: int | None = None
    movements: list[SourceMovement] = field(default_factory=list)

    @property
    def mode(self) -> str:
        return "full" if self.full_sync else "incremental"

    @property
    def remaining(self) -> int | None:
        """Rows still wanted, or None when the run fetches everything."""
        if self.target is None:
            return None
        return max(0, self.target - len(self.movements))


class SyncService:
    """Drives logins and per-account sync runs."""

    def __init__(
        self,
        source: SourceGateway,
        ledger: LedgerGateway,
        accounts: AccountRepository,
        config_store: ConfigRepository,
        login_session: LoginSession | None = None,
        config: SyncConfig | None = None,
        mapper: TransactionMapper | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the service.

        Args:
            source: Paginated movement source
            ledger: Destination ledger
            accounts: Account registry holding the sync checkpoints
            config_store: Key/value store for login outcomes
            login_session: Interactive login capability used by start_login
            config: Page size, login timing and snapshot options
            mapper: Movement to transaction mapper
            clock: Monotonic clock used to bound the login wait
            sleep: Sleep function used between login polls
        """
        self.source = source
        self.ledger = ledger
        self.accounts = accounts
        self.config_store = config_store
        self.login_session = login_session
        self.config = config or SyncConfig()
        self.mapper = mapper or TransactionMapper()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

    def get_sync_state(self) -> SyncState:
        return SyncState(in_progress=self._lock.locked())

    @contextmanager
    def _single_flight(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise OperationInProgressError(
                f"Cannot start {operation}: another login or sync is in progress"
            )
        try:
            yield
        finally:
            self._lock.release()

    # Login

    def start_login(
        self,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> LoginResult:
        """Wait for an interactive login, then register the discovered accounts.

        The login session is closed on every exit path. The outcome is
        stamped in the config store.

        Args:
            timeout: Seconds to wait for a valid session (default from config)
            poll_interval: Seconds between session polls (default from config)

        Returns:
            LoginResult: Discovered accounts on success, error details otherwise
        """
        if self.login_session is None:
            return LoginResult(
                success=False,
                error="No login session configured",
                failure=SyncFailure.LOGIN_FAILED,
            )

        try:
            with self._single_flight("login"):
                return self._run_login(
                    self.login_session,
                    self.config.login_timeout if timeout is None else timeout,
                    self.config.poll_interval if poll_interval is None else poll_interval,
                )
        except OperationInProgressError as e:
            logger.warning(str(e))
            return LoginResult(success=False, error=str(e), failure=SyncFailure.IN_PROGRESS)

    def _run_login(
        self, session: LoginSession, timeout: float, poll_interval: float
    ) -> LoginResult:
        logger.info("Starting login process...")
        try:
            session.start()
            accounts = self._wait_for_session(session, timeout, poll_interval)
            self.accounts.upsert_from_source(accounts)
            self.config_store.set_login_success()
            logger.info(f"Login successful! Found {len(accounts)} accounts")
            return LoginResult(success=True, accounts=accounts)
        except LoginTimeoutError as e:
            logger.error(f"Login failed: {e}")
            self.config_store.set_login_error(str(e))
            return LoginResult(success=False, error=str(e), failure=SyncFailure.LOGIN_TIMEOUT)
        except Exception as e:
            logger.exception("Login failed")
            message = str(e) or type(e).__name__
            self.config_store.set_login_error(message)
            return LoginResult(success=False, error=message, failure=SyncFailure.LOGIN_FAILED)
        finally:
            session.close()

    def _wait_for_session(
        self, session: LoginSession, timeout: float, poll_interval: float
    ) -> list[SourceAccount]:
        started = self._clock()
        while self._clock() - started < timeout:
            accounts = session.poll()
            if accounts is not None:
                return accounts
            self._sleep(poll_interval)
        raise LoginTimeoutError("Timeout waiting for valid session")

    # Sync

    def sync_account(self, account_id: str, full_sync: bool = False) -> SyncResult:
        """Sync one account from the source into its linked ledger account.

        Args:
            account_id: Source account id
            full_sync: Fetch the whole history instead of only new movements

        Returns:
            SyncResult: Outcome of the run; ``needs_reauth`` and
            ``needs_account_link`` tell the caller what to do next
        """
        try:
            with self._single_flight(f"sync of {account_id}"):
                return self._run_sync(account_id, full_sync)
        except OperationInProgressError as e:
            logger.warning(str(e))
            return SyncResult(success=False, message=str(e), failure=SyncFailure.IN_PROGRESS)
        except Exception as e:
            logger.exception(f"Sync of {account_id} failed")
            return SyncResult(success=False, message=f"Sync failed: {e}")

    def sync_all(self, full_sync: bool = False) -> dict[str, SyncResult]:
        """Sync every linked account in turn.

        Stops early when the source asks for a new login, since every later
        account would fail the same way.
        """
        results: dict[str, SyncResult] = {}
        for account in self.accounts.find_all():
            if not account.is_linked:
                logger.info(f"Skipping unlinked account {account.iban}")
                continue
            result = self.sync_account(account.id, full_sync=full_sync)
            results[account.id] = result
            if result.needs_reauth:
                logger.warning("Session expired, stopping sync of remaining accounts")
                break
        return results

    def _run_sync(self, account_id: str, full_sync: bool) -> SyncResult:
        if not self.source.is_session_valid():
            return SyncResult(
                success=False,
                message="Not authenticated. Please login first.",
                failure=SyncFailure.NOT_AUTHENTICATED,
            )

        account = self.accounts.find_by_id(account_id)
        if account is None:
            return SyncResult(
                success=False,
                message="Account not found",
                failure=SyncFailure.ACCOUNT_NOT_FOUND,
            )

        ledger_account_id = self.accounts.get_ledger_account_id(account_id)
        if not ledger_account_id:
            return SyncResult(
                success=False,
                message="Account not linked to a ledger account",
                needs_account_link=True,
                failure=SyncFailure.NOT_LINKED,
            )

        run = SyncRun(
            account=account,
            ledger_account_id=ledger_account_id,
            full_sync=full_sync,
            last_synced_row_count=self.accounts.get_last_synced_row_count(account_id),
        )
        logger.info(
            f"Syncing account {account.iban} ({run.mode}, "
            f"last synced: {run.last_synced_row_count} rows)..."
        )

        try:
            run.total_count = self.source.fetch_movements(account.iban, 0, 1).total_count
        except SourceError as e:
            return self._fetch_failure(e)

        if not full_sync and run.last_synced_row_count > 0:
            new_rows = run.total_count - run.last_synced_row_count
            if new_rows <= 0:
                logger.info("No new movements to sync")
                return SyncResult(
                    success=True, message="No new movements to sync", movement_count=0
                )
            logger.info(f"Found {new_rows} new movements to fetch")
            run.target = new_rows

        try:
            self._paginate(run)
        except SourceError as e:
            return self._fetch_failure(e)

        logger.info(f"Total movements fetched: {len(run.movements)}")
        self._log_movements_summary(run.movements)
        if self.config.save_debug_snapshots:
            save_sync_snapshot(
                self.config.snapshot_path, account.iban, run.movements, full_sync
            )

        transactions = self.mapper.map_movements(run.movements, ledger_account_id)
        import_result = self._import(ledger_account_id, transactions)
        # Checkpoint never decreases, even on a full sync of a shrunk source
        self.accounts.update_sync_status(
            account.id, max(run.total_count, run.last_synced_row_count)
        )

        count = len(run.movements)
        if import_result.success:
            message = f"Synced {count} movements. {import_result.message}"
        else:
            message = (
                f"Fetched {count} movements but ledger import failed: "
                f"{import_result.message}"
            )
        return SyncResult(
            success=True,
            message=message,
            movement_count=count,
            import_result=import_result,
            failure=None if import_result.success else SyncFailure.LEDGER_IMPORT_FAILED,
        )

    def _paginate(self, run: SyncRun) -> None:
        page_size = self.config.page_size
        start = 0
        while run.remaining is None or run.remaining > 0:
            page = self.source.fetch_movements(run.account.iban, start, page_size)
            batch = page.movements
            if run.remaining is not None:
                batch = batch[: run.remaining]
            run.movements.extend(batch)

            logger.info(
                f"Fetched {start} to {start + len(page.movements)} of {run.total_count}"
            )
            if len(page.movements) < page_size:
                break
            start += page_size

    def _import(
        self, ledger_account_id: str, transactions: list[NormalizedTransaction]
    ) -> ImportResult:
        try:
            return self.ledger.import_transactions(ledger_account_id, transactions)
        except Exception as e:
            logger.exception("Ledger import raised")
            return ImportResult(success=False, errors=[str(e)], message=f"Import failed: {e}")

    @staticmethod
    def _fetch_failure(error: SourceError) -> SyncResult:
        if isinstance(error, SessionExpiredError):
            logger.warning(f"Source session rejected: {error}")
            return SyncResult(
                success=False,
                message=str(error) or "Session expired",
                needs_reauth=True,
                failure=SyncFailure.REAUTH_REQUIRED,
            )
        logger.error(f"Failed to fetch movements: {error}")
        return SyncResult(
            success=False,
            message=str(error) or "Failed to fetch movements",
            failure=SyncFailure.SOURCE_FETCH_FAILED,
        )

    @staticmethod
    def _log_movements_summary(movements: list[SourceMovement]) -> None:
        for m in movements[:SUMMARY_SIZE]:
            logger.debug(
                f"{m.accounting_date} | {m.movement_sign}{m.movement_amount} | "
                f"{m.counterparty_name or m.standard_wording}"
            )
        if len(movements) > SUMMARY_SIZE:
            logger.debug(f"... and {len(movements) - SUMMARY_SIZE} more")

    # Status

    def get_status(self) -> SyncStatus:
        """Report login state and, per account, how many movements are pending.

        Source lookups that fail leave the counts unknown instead of raising.
        """
        session_valid = self.source.validate_session()
        statuses: list[AccountStatus] = []
        for account in self.accounts.find_all():
            count: int | None = None
            if session_valid:
                try:
                    count = self.source.fetch_movements(account.iban, 0, 1).total_count
                except SourceError as e:
                    logger.warning(f"Could not count movements for {account.iban}: {e}")
            pending = (
                max(0, count - account.last_synced_row_count)
                if count is not None and account.last_synced_row_count
                else None
            )
            statuses.append(
                AccountStatus(
                    **account.model_dump(),
                    source_movement_count=count,
                    pending_count=pending,
                )
            )

        if self.source.is_session_valid() and not session_valid:
            last_error = "Session expired"
        else:
            last_error = self.config_store.get_last_error()

        return SyncStatus(
            last_login_time=self.config_store.get_last_login_time(),
            last_login_success=self.config_store.get_last_login_success(),
            last_error=last_error,
            session_valid=session_valid,
            in_progress=self._lock.locked(),
            accounts=statuses,
        )


__all__ = ["SyncService", "SyncConfig", "SyncRun"]
