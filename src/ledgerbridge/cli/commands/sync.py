"""Sync commands for the ledgerbridge CLI."""

import logging

import typer

from ledgerbridge.config import get_current_profile
from ledgerbridge.schemas import SyncResult
from ledgerbridge.sync import build_sync_service

app = typer.Typer(help="Sync bank movements into the ledger")
logger = logging.getLogger(__name__)


def report_result(label: str, result: SyncResult) -> None:
    """Log a sync result with a hint for the follow-up action."""
    if not result.success:
        logger.error(f"❌ {label}: {result.message}")
        if result.needs_reauth:
            logger.info("💡 Session expired, run 'ledgerbridge login' again")
        if result.needs_account_link:
            logger.info("💡 Link it first with 'ledgerbridge accounts link'")
        return

    if result.import_result is not None and not result.import_result.success:
        logger.warning(f"⚠️  {label}: {result.message}")
        for error in result.import_result.errors:
            logger.warning(f"   • {error}")
        return

    logger.info(f"✅ {label}: {result.message}")


@app.command("account")
def sync_account(
    account_id: str = typer.Argument(..., help="Source account id"),
    full: bool = typer.Option(
        False,
        "--full",
        "-f",
        help="Fetch the whole history, ignoring the sync checkpoint",
    ),
) -> None:
    """Sync one linked account.

    By default only movements added since the last sync are fetched.
    """
    logger.info(f"Starting sync of {account_id} (Profile: {get_current_profile()})")
    try:
        service = build_sync_service()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    result = service.sync_account(account_id, full_sync=full)
    report_result(account_id, result)
    if not result.success:
        raise typer.Exit(1)


@app.command("all")
def sync_all(
    full: bool = typer.Option(
        False,
        "--full",
        "-f",
        help="Fetch the whole history, ignoring the sync checkpoints",
    ),
) -> None:
    """Sync every linked account."""
    try:
        service = build_sync_service()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    results = service.sync_all(full_sync=full)
    if not results:
        logger.warning("No linked accounts to sync")
        logger.info("💡 Link accounts with 'ledgerbridge accounts link'")
        raise typer.Exit(1)

    for account_id, result in results.items():
        report_result(account_id, result)

    if not all(result.success for result in results.values()):
        raise typer.Exit(1)
