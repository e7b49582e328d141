"""Ledger loaders that receive normalized transactions."""

from .ledger_loader import DuckDBLedger

__all__ = ["DuckDBLedger"]
