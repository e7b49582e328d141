"""Exception hierarchy and result codes for ledgerbridge.

Gateways raise the exceptions below; the sync service catches them at its
boundary and reports a :class:`SyncFailure` code on the returned result.
"""

from enum import Enum


class LedgerBridgeError(Exception):
    """Base class for all ledgerbridge errors."""


class SourceError(LedgerBridgeError):
    """A request to the homebanking source failed."""


class SessionExpiredError(SourceError):
    """The source rejected the session (HTTP 401); a new login is required."""


class SourceFetchError(SourceError):
    """Transport, HTTP or payload failure while reading from the source."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LedgerImportError(LedgerBridgeError):
    """The ledger could not import a batch of transactions."""


class LoginTimeoutError(LedgerBridgeError):
    """No valid session appeared before the login timeout elapsed."""


class OperationInProgressError(LedgerBridgeError):
    """A login or sync is already running in this process."""


class SyncFailure(str, Enum):
    """Machine-readable reason attached to a failed sync or login result."""

    NOT_AUTHENTICATED = "not_authenticated"
    ACCOUNT_NOT_FOUND = "account_not_found"
    NOT_LINKED = "not_linked"
    REAUTH_REQUIRED = "reauth_required"
    SOURCE_FETCH_FAILED = "source_fetch_failed"
    LEDGER_IMPORT_FAILED = "ledger_import_failed"
    LOGIN_TIMEOUT = "login_timeout"
    LOGIN_FAILED = "login_failed"
    IN_PROGRESS = "in_progress"


__all__ = [
    "LedgerBridgeError",
    "SourceError",
    "SessionExpiredError",
    "SourceFetchError",
    "LedgerImportError",
    "LoginTimeoutError",
    "OperationInProgressError",
    "SyncFailure",
]
