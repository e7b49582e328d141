"""HTTP client for the homebanking API.

Authentication is not performed here. An interactive login (a browser driven
by the user) writes a session state file holding the site's cookies; this
module only reads that file and replays the cookies on each request.

Session state format (opaque to the sync engine)::

    {"cookies": [{"name": "SESSION", "value": "...", "domain": "...", "path": "/"}]}
"""

import json
import logging
from pathlib import Path
from typing import Any

import requests
from pydantic import ValidationError

from ..config import SourceConfig
from ..errors import SessionExpiredError, SourceFetchError
from ..schemas import MovementPage, SourceAccount, SourceMovement

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "SESSION"
LOGIN_PATH = "/webapp/nl/aanmelden"
ACCOUNTS_PATH = "/accounts"
MOVEMENTS_PATH = "/accounts/accountingmovements"


def read_session_cookies(state_path: Path) -> list[dict[str, Any]]:
    """Return the cookies stored in the session state file.

    Missing, unreadable or malformed files yield an empty list.
    """
    if not state_path.exists():
        return []
    try:
        state = json.loads(state_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read session state {state_path}: {e}")
        return []
    cookies = state.get("cookies") if isinstance(state, dict) else None
    if not isinstance(cookies, list):
        return []
    return [c for c in cookies if isinstance(c, dict) and c.get("name")]


def has_session_cookie(state_path: Path) -> bool:
    return any(c["name"] == SESSION_COOKIE_NAME for c in read_session_cookies(state_path))


def parse_accounts(payload: Any) -> list[SourceAccount]:
    """Build accounts from an ``/accounts`` response body."""
    raw_accounts = payload.get("accounts") if isinstance(payload, dict) else None
    try:
        return [SourceAccount.model_validate(a) for a in raw_accounts or []]
    except ValidationError as e:
        raise SourceFetchError(f"Malformed accounts payload: {e}") from e


def parse_movements(payload: Any) -> MovementPage:
    """Build a movement page from an ``/accounts/accountingmovements`` body."""
    if not isinstance(payload, dict):
        raise SourceFetchError("Malformed movements payload: expected an object")
    try:
        movements = [SourceMovement.model_validate(m) for m in payload.get("result") or []]
        return MovementPage(movements=movements, total_count=payload.get("rowCount") or 0)
    except ValidationError as e:
        raise SourceFetchError(f"Malformed movements payload: {e}") from e


class HomebankClient:
    """Source gateway backed by the homebanking JSON API."""

    def __init__(self, config: SourceConfig | None = None):
        """Initialize the client.

        Args:
            config: Source settings (base URL, session state path, timeouts)
        """
        self.config = config or SourceConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.state_path = Path(self.config.session_state_path)

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{LOGIN_PATH}"

    def is_session_valid(self) -> bool:
        """Return True when a session state file is present."""
        return self.state_path.exists()

    def validate_session(self) -> bool:
        """Check the stored session with a live ``/accounts`` request."""
        if not self.is_session_valid():
            return False
        try:
            with self._open_session() as session:
                response = session.get(
                    f"{self.base_url}{ACCOUNTS_PATH}", timeout=self.config.request_timeout
                )
            return response.ok
        except requests.RequestException as e:
            logger.debug(f"Session validation failed: {e}")
            return False

    def fetch_accounts(self) -> list[SourceAccount]:
        """List the accounts visible to the stored session.

        Raises:
            SessionExpiredError: No session, or the source rejected it
            SourceFetchError: Transport or HTTP failure
        """
        return parse_accounts(self._get_json(ACCOUNTS_PATH))

    def fetch_movements(self, iban: str, start: int = 0, max_results: int = 200) -> MovementPage:
        """Fetch one page of movements for ``iban``, newest first.

        Raises:
            SessionExpiredError: No session, or the source rejected it
            SourceFetchError: Transport, HTTP or payload failure
        """
        payload = self._get_json(
            MOVEMENTS_PATH,
            params={"accountNumber": iban, "start": start, "maxResults": max_results},
        )
        return parse_movements(payload)

    def _open_session(self) -> requests.Session:
        session = requests.Session()
        for cookie in read_session_cookies(self.state_path):
            session.cookies.set(
                cookie["name"],
                str(cookie.get("value", "")),
                domain=cookie.get("domain", ""),
                path=cookie.get("path", "/"),
            )
        return session

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if not self.is_session_valid():
            raise SessionExpiredError("Not authenticated: no session state found")

        url = f"{self.base_url}{path}"
        try:
            with self._open_session() as session:
                response = session.get(url, params=params, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            raise SourceFetchError(f"Request to {path} failed: {e}") from e

        if response.status_code == 401:
            raise SessionExpiredError("Session expired")
        if not response.ok:
            raise SourceFetchError(
                f"API error: {response.status_code}", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise SourceFetchError(f"Invalid JSON from {path}: {e}") from e


class SessionFileLogin:
    """Login session that waits for an external login to write session state.

    The user logs in at :attr:`HomebankClient.login_url` with a browser that
    exports its cookies to the configured session state file. Each poll
    checks for the ``SESSION`` cookie and confirms it with ``/accounts``; any
    HTTP error reply means "not yet" and polling continues.
    """

    def __init__(self, client: HomebankClient):
        self.client = client
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._active = True
        logger.info(f"Log in at {self.client.login_url}")
        logger.info(f"Waiting for session state at {self.client.state_path}")

    def poll(self) -> list[SourceAccount] | None:
        if not self._active:
            raise RuntimeError("Login session is not started")
        if not has_session_cookie(self.client.state_path):
            return None
        try:
            return self.client.fetch_accounts()
        except SessionExpiredError:
            logger.debug("Session cookie present but not yet accepted")
            return None
        except SourceFetchError as e:
            if e.status_code is None:
                raise
            logger.debug(f"Session not usable yet: {e}")
            return None

    def close(self) -> None:
        if self._active:
            logger.debug("Closing login session")
        self._active = False


__all__ = [
    "HomebankClient",
    "SessionFileLogin",
    "SESSION_COOKIE_NAME",
    "read_session_cookies",
    "has_session_cookie",
    "parse_accounts",
    "parse_movements",
]
