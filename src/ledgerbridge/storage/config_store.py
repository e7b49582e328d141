"""Key/value application state stored alongside the account registry."""

from datetime import datetime

from .database import StateDatabase

LAST_LOGIN_TIME = "last_login_time"
LAST_LOGIN_SUCCESS = "last_login_success"
LAST_ERROR = "last_error"


class ConfigRepository:
    """String key/value store backed by the ``config`` table."""

    def __init__(self, database: StateDatabase):
        self.database = database

    def get(self, key: str) -> str | None:
        with self.database.connect() as conn:
            row = conn.execute("SELECT value FROM config WHERE key = ?", [key]).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self.database.connect() as conn:
            conn.execute("INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)", [key, value])

    def set_login_success(self, at: datetime | None = None) -> None:
        self.set(LAST_LOGIN_TIME, (at or datetime.now()).isoformat())
        self.set(LAST_LOGIN_SUCCESS, "true")
        self.set(LAST_ERROR, "")

    def set_login_error(self, error: str, at: datetime | None = None) -> None:
        self.set(LAST_LOGIN_TIME, (at or datetime.now()).isoformat())
        self.set(LAST_LOGIN_SUCCESS, "false")
        self.set(LAST_ERROR, error)

    def get_last_login_time(self) -> datetime | None:
        value = self.get(LAST_LOGIN_TIME)
        return datetime.fromisoformat(value) if value else None

    def get_last_login_success(self) -> bool | None:
        """Return the last login outcome, or None if no login was recorded."""
        value = self.get(LAST_LOGIN_SUCCESS)
        return None if value is None else value == "true"

    def get_last_error(self) -> str | None:
        return self.get(LAST_ERROR) or None


__all__ = ["ConfigRepository"]
