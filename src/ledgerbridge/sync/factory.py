"""Wire the sync service from settings."""

from ..config import LedgerBridgeSettings, get_settings
from ..connectors.homebank import HomebankClient, SessionFileLogin
from ..loaders.ledger_loader import DuckDBLedger
from ..storage.accounts import AccountRepository
from ..storage.config_store import ConfigRepository
from ..storage.database import open_state_database
from .service import SyncConfig, SyncService


def build_sync_service(settings: LedgerBridgeSettings | None = None) -> SyncService:
    """Return a sync service backed by the configured databases and source."""
    settings = settings or get_settings()
    database = open_state_database(settings.database.path)
    client = HomebankClient(settings.source)
    return SyncService(
        source=client,
        ledger=DuckDBLedger(settings.ledger.path),
        accounts=AccountRepository(database),
        config_store=ConfigRepository(database),
        login_session=SessionFileLogin(client),
        config=SyncConfig.from_settings(settings),
    )


__all__ = ["build_sync_service"]
