"""Tests for the key/value config store."""

# ruff: noqa: S101

from datetime import datetime

import pytest

from ledgerbridge.storage import ConfigRepository


@pytest.mark.unit
class TestConfigRepository:
    def test_get_missing_key(self, config_repo: ConfigRepository) -> None:
        assert config_repo.get("nope") is None

    def test_set_overwrites(self, config_repo: ConfigRepository) -> None:
        config_repo.set("key", "one")
        config_repo.set("key", "two")

        assert config_repo.get("key") == "two"

    def test_nothing_recorded(self, config_repo: ConfigRepository) -> None:
        assert config_repo.get_last_login_time() is None
        assert config_repo.get_last_login_success() is None
        assert config_repo.get_last_error() is None

    def test_login_error_then_success(self, config_repo: ConfigRepository) -> None:
        failed_at = datetime(2026, 2, 18, 8, 0)
        config_repo.set_login_error("Timeout waiting for valid session", at=failed_at)

        assert config_repo.get_last_login_success() is False
        assert config_repo.get_last_error() == "Timeout waiting for valid session"
        assert config_repo.get_last_login_time() == failed_at

        config_repo.set_login_success(at=datetime(2026, 2, 18, 9, 0))

        assert config_repo.get_last_login_success() is True
        assert config_repo.get_last_error() is None
        assert config_repo.get_last_login_time() == datetime(2026, 2, 18, 9, 0)
