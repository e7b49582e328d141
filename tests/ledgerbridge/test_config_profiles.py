"""Tests for profile-based settings loading."""

# ruff: noqa: S101

from pathlib import Path

import pytest
from pydantic import ValidationError

from ledgerbridge.config import (
    DatabaseConfig,
    LedgerBridgeSettings,
    get_current_profile,
    get_settings,
    reload_settings,
    set_current_profile,
)


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory so no real .env or data dir is touched."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.mark.unit
class TestProfiles:
    def test_profile_is_test_in_tests(self) -> None:
        assert get_current_profile() == "test"

    def test_set_current_profile(self) -> None:
        set_current_profile("household")

        assert get_current_profile() == "household"

    @pytest.mark.parametrize("profile", ["", "bad profile", "a/b", "../etc"])
    def test_invalid_profile_rejected(self, profile: str) -> None:
        with pytest.raises(ValueError):
            set_current_profile(profile)
        assert get_current_profile() == "test"


@pytest.mark.unit
class TestSettings:
    def test_defaults(self, workdir: Path) -> None:
        settings = get_settings()

        assert settings.profile == "test"
        assert settings.source.page_size == 200
        assert settings.source.base_url == "https://homebank.argenta.be"
        assert settings.database.path == Path("data/ledgerbridge.duckdb")
        assert (workdir / "data" / "movements").is_dir()

    def test_settings_are_cached_per_profile(self, workdir: Path) -> None:
        assert get_settings() is get_settings()
        assert get_settings("other") is not get_settings()

    def test_environment_override(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LEDGERBRIDGE_SOURCE__PAGE_SIZE", "50")

        assert get_settings().source.page_size == 50

    def test_profile_env_file(self, workdir: Path) -> None:
        (workdir / ".env.alice").write_text(
            "LEDGERBRIDGE_LEDGER__PATH=data/alice/ledger.duckdb\n", encoding="utf-8"
        )

        settings = get_settings("alice")

        assert settings.ledger.path == Path("data/alice/ledger.duckdb")
        assert get_settings("bob").ledger.path == Path("data/ledger.duckdb")

    def test_reload_picks_up_changes(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        first = get_settings()
        monkeypatch.setenv("LEDGERBRIDGE_DEBUG", "true")

        reloaded = reload_settings()

        assert reloaded is not first
        assert reloaded.debug is True

    def test_invalid_value_wrapped(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LEDGERBRIDGE_SOURCE__PAGE_SIZE", "0")

        with pytest.raises(ValueError, match="Configuration error for profile 'test'"):
            get_settings()

    def test_database_extension_validated(self) -> None:
        with pytest.raises(ValidationError):
            DatabaseConfig(path=Path("state.sqlite"))

    def test_settings_are_frozen(self, workdir: Path) -> None:
        settings = LedgerBridgeSettings(profile="test")

        with pytest.raises(ValidationError):
            settings.debug = True  # type: ignore[misc]
