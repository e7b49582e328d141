"""Centralized configuration management for ledgerbridge.

This module provides a Pydantic Settings-based configuration system that
consolidates all application settings with environment variable integration,
type validation, and clear error handling.
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class DatabaseConfig(BaseModel):
    """State database configuration (accounts registry and key/value config)."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/ledgerbridge.duckdb"),
        description="Path to the DuckDB state database",
    )
    create_dirs: bool = Field(
        default=True, description="Automatically create database directories"
    )

    @field_validator("path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure database path has correct extension."""
        if not str(v).endswith((".db", ".duckdb")):
            raise ValueError("Database path must end with .db or .duckdb")
        return v


class SourceConfig(BaseModel):
    """Homebanking source configuration settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(
        default="https://homebank.argenta.be",
        description="Base URL of the homebanking API",
    )
    session_state_path: Path = Field(
        default=Path("data/browser-state.json"),
        description="Path to the opaque session state (cookie storage) file",
    )
    page_size: int = Field(
        default=200, ge=1, le=1000, description="Movements fetched per page"
    )
    request_timeout: float = Field(
        default=30.0, gt=0, le=300.0, description="HTTP request timeout in seconds"
    )
    login_timeout: float = Field(
        default=300.0, gt=0, description="Seconds to wait for an interactive login"
    )
    poll_interval: float = Field(
        default=5.0, gt=0, le=60.0, description="Seconds between login polls"
    )


class LedgerConfig(BaseModel):
    """Budget ledger configuration settings."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/ledger.duckdb"),
        description="Path to the DuckDB ledger database",
    )

    @field_validator("path")
    @classmethod
    def validate_ledger_path(cls, v: Path) -> Path:
        """Ensure ledger path has correct extension."""
        if not str(v).endswith((".db", ".duckdb")):
            raise ValueError("Ledger path must end with .db or .duckdb")
        return v


class DataConfig(BaseModel):
    """Diagnostic data output configuration."""

    model_config = ConfigDict(frozen=True)

    movements_path: Path = Field(
        default=Path("data/movements"),
        description="Directory for per-run movement snapshots",
    )
    save_debug_snapshots: bool = Field(
        default=True, description="Write a JSON snapshot of every sync run"
    )


class LoggingSettings(BaseModel):
    """Log level and rotating log file settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Root log level"
    )
    log_to_file: bool = Field(default=True, description="Also write a log file")
    log_file_path: Path = Field(
        default=Path("logs/ledgerbridge.log"), description="Path to the log file"
    )
    max_file_size_mb: int = Field(
        default=10, ge=1, le=1000, description="Size at which the log file rotates"
    )
    backup_count: int = Field(
        default=5, ge=0, le=50, description="Rotated log files to keep"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class LedgerBridgeSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the LEDGERBRIDGE_ prefix.
    For nested configs, use double underscores: LEDGERBRIDGE_SOURCE__PAGE_SIZE

    Profile Support:
    - Loads from .env.{profile} files (e.g., .env.dev, .env.household)
    - Falls back to .env when no profile file exists
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = Field(default=False, description="Enable debug mode")
    profile: str = Field(
        default="default",
        description="Profile name (e.g., alice, household)",
    )

    @field_validator("profile")
    @classmethod
    def validate_profile_name(cls, v: str) -> str:
        """Ensure profile name is safe for use as a filename."""
        _check_profile_name(v)
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Load the profile-specific env file in place of the default one."""
        init_dict = init_settings.init_kwargs if init_settings else {}
        profile = init_dict.get("profile", "default")  # type: ignore[reportUnknownMemberType]

        profile_env_file = Path(f".env.{profile}")
        env_file = str(profile_env_file) if profile_env_file.exists() else ".env"

        from pydantic_settings import DotEnvSettingsSource

        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=env_file,
            env_file_encoding="utf-8",
        )

        # Later sources override earlier ones
        return (
            init_settings,
            env_settings,
            custom_dotenv,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LEDGERBRIDGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def create_directories(self) -> None:
        """Create necessary directories for the application."""
        directories = [
            self.database.path.parent,
            self.ledger.path.parent,
            self.source.session_state_path.parent,
            self.data.movements_path,
            self.logging.log_file_path.parent,
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


_settings_cache: dict[str, LedgerBridgeSettings] = {}
_current_profile: str = "default"


def _check_profile_name(profile: str) -> None:
    if not profile:
        raise ValueError("Profile name cannot be empty")
    if not _PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. "
            "Profile name must contain only alphanumeric characters, dashes, and underscores"
        )


def get_settings(profile: str | None = None) -> LedgerBridgeSettings:
    """Get the settings instance for the specified profile.

    Settings are loaded once per profile and cached.

    Args:
        profile: Profile name. Defaults to the current profile.

    Returns:
        LedgerBridgeSettings: The configuration instance for the profile

    Raises:
        ValueError: If configuration is missing or invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile]

    try:
        settings = LedgerBridgeSettings(profile=profile)
        if settings.database.create_dirs:
            settings.create_directories()
    except Exception as e:
        raise ValueError(f"Configuration error for profile '{profile}': {e}") from e

    _settings_cache[profile] = settings
    return settings


def set_current_profile(profile: str) -> None:
    """Set the current active profile.

    Raises:
        ValueError: If profile name contains invalid characters
    """
    global _current_profile

    _check_profile_name(profile)
    _current_profile = profile


def get_current_profile() -> str:
    """Get the current active profile."""
    return _current_profile


def reload_settings(profile: str | None = None) -> LedgerBridgeSettings:
    """Reload settings from the environment, discarding the cached instance.

    Args:
        profile: Profile to reload. If None, reloads current profile.

    Returns:
        LedgerBridgeSettings: The reloaded configuration instance
    """
    if profile is None:
        profile = _current_profile

    _settings_cache.pop(profile, None)
    return get_settings(profile)


def clear_settings_cache() -> None:
    """Drop every cached settings instance."""
    _settings_cache.clear()
