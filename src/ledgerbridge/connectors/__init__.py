"""Connectors for the homebanking source and the capabilities the engine uses.

The sync engine talks to the source and the ledger only through the protocols
in :mod:`ledgerbridge.connectors.base`.
"""

from .base import LedgerGateway, LoginSession, SourceGateway
from .homebank import HomebankClient, SessionFileLogin

__all__ = [
    "HomebankClient",
    "LedgerGateway",
    "LoginSession",
    "SessionFileLogin",
    "SourceGateway",
]
