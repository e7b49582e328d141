"""Account registry commands for the ledgerbridge CLI.

Source accounts are discovered at login; these commands link them to ledger
accounts so they can be synced.
"""

import logging

import typer

from ledgerbridge.sync import build_sync_service

app = typer.Typer(help="List and link source accounts")
logger = logging.getLogger(__name__)


@app.command("list")
def list_accounts() -> None:
    """List source accounts with their link and checkpoint."""
    service = build_sync_service()
    accounts = service.accounts.find_all()
    if not accounts:
        logger.info("No accounts yet, run 'ledgerbridge login' first")
        return

    for account in accounts:
        link = account.ledger_account_id or "-"
        synced = account.last_sync_time.isoformat() if account.last_sync_time else "never"
        typer.echo(
            f"{account.id}\t{account.iban}\t{account.alias}\t"
            f"ledger={link}\trows={account.last_synced_row_count}\tlast_sync={synced}"
        )


@app.command("ledger")
def list_ledger_accounts() -> None:
    """List accounts that exist in the ledger."""
    service = build_sync_service()
    for ledger_account in service.ledger.list_accounts():
        typer.echo(f"{ledger_account.id}\t{ledger_account.name}")


@app.command("create-ledger")
def create_ledger_account(
    name: str = typer.Argument(..., help="Name of the new ledger account"),
) -> None:
    """Create a ledger account and print its id."""
    service = build_sync_service()
    try:
        ledger_account = service.ledger.create_account(name)
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    typer.echo(ledger_account.id)


@app.command("link")
def link_account(
    account_id: str = typer.Argument(..., help="Source account id"),
    ledger_account_id: str = typer.Argument(..., help="Ledger account id"),
) -> None:
    """Link a source account to a ledger account."""
    service = build_sync_service()
    if service.accounts.find_by_id(account_id) is None:
        logger.error(f"❌ Unknown account: {account_id}")
        raise typer.Exit(1)
    known_ids = {a.id for a in service.ledger.list_accounts()}
    if ledger_account_id not in known_ids:
        logger.error(f"❌ Unknown ledger account: {ledger_account_id}")
        raise typer.Exit(1)

    service.accounts.link_ledger_account(account_id, ledger_account_id)
    logger.info(f"✅ Linked {account_id} to {ledger_account_id}")


@app.command("unlink")
def unlink_account(
    account_id: str = typer.Argument(..., help="Source account id"),
) -> None:
    """Remove the ledger link; the next sync starts from scratch."""
    service = build_sync_service()
    if service.accounts.find_by_id(account_id) is None:
        logger.error(f"❌ Unknown account: {account_id}")
        raise typer.Exit(1)

    service.accounts.unlink_ledger_account(account_id)
    logger.info(f"✅ Unlinked {account_id}")
