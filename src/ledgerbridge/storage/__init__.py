"""Durable state: account registry, sync checkpoints and key/value config."""

from .accounts import AccountRepository
from .config_store import ConfigRepository
from .database import StateDatabase, open_state_database

__all__ = [
    "AccountRepository",
    "ConfigRepository",
    "StateDatabase",
    "open_state_database",
]
