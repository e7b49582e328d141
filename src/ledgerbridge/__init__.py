"""ledgerbridge: incremental bank movement sync into a budget ledger.

This package provides:
- A homebanking connector that replays an externally captured login session
- An incremental sync engine with per-account checkpoints
- A DuckDB account registry and a DuckDB-backed budget ledger
- A CLI for login, account linking, sync and status
"""

__version__ = "0.1.0"
